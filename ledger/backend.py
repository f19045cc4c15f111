"""Storage collaborator reached by the entity store.

The store only ever talks to a :class:`Backend`. Payloads are plain dicts in
the shape the storage commands exchange; failures are raised as exceptions
and converted to messages by the caller.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class BackendError(Exception):
    pass


class Backend(ABC):

    @abstractmethod
    async def list_categories(self) -> list[dict]:
        pass

    @abstractmethod
    async def list_subcategories(self) -> list[dict]:
        pass

    @abstractmethod
    async def list_operations(self) -> list[dict]:
        pass

    @abstractmethod
    async def create_category(self, name: str) -> dict:
        pass

    @abstractmethod
    async def update_category(self, id: int, name: str) -> None:
        pass

    @abstractmethod
    async def remove_category(self, id: int) -> None:
        pass

    @abstractmethod
    async def create_subcategory(self, category_id: int, name: str) -> dict:
        pass

    @abstractmethod
    async def update_subcategory(self, id: int, name: str) -> None:
        pass

    @abstractmethod
    async def remove_subcategory(self, id: int) -> None:
        pass

    @abstractmethod
    async def create_operation(self, subcategory_id: int, date: str, value: int) -> dict:
        pass

    @abstractmethod
    async def update_operation(self, id: int, subcategory_id: int, date: str, value: int) -> None:
        pass

    @abstractmethod
    async def remove_operation(self, id: int) -> None:
        pass


class InMemoryBackend(Backend):
    """In-process backend with autoincrement ids and database-side cascades.

    Category names are unique, subcategory names are unique within their
    category. Ids are never reused, even after removal.
    """

    def __init__(self, categories=(), subcategories=(), operations=()):
        self._categories: dict[int, dict] = {int(c["id"]): dict(c) for c in categories}
        self._subcategories: dict[int, dict] = {int(s["id"]): dict(s) for s in subcategories}
        self._operations: dict[int, dict] = {int(o["id"]): dict(o) for o in operations}
        self._next_ids = {
            "category": max(self._categories, default=0) + 1,
            "subcategory": max(self._subcategories, default=0) + 1,
            "operation": max(self._operations, default=0) + 1,
        }

    @classmethod
    def from_seed(cls, path: str) -> "InMemoryBackend":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        backend = cls(
            data.get("categories", []),
            data.get("subcategories", []),
            data.get("operations", []),
        )
        logger.info(
            "Seeded backend from %s: %d categories, %d subcategories, %d operations",
            path, len(backend._categories), len(backend._subcategories), len(backend._operations),
        )
        return backend

    def _next_id(self, table: str) -> int:
        new_id = self._next_ids[table]
        self._next_ids[table] = new_id + 1
        return new_id

    def _check_category_name(self, name: str, exclude_id=None) -> None:
        for c in self._categories.values():
            if c["name"] == name and c["id"] != exclude_id:
                raise BackendError(f"DB Error: category '{name}' already exists")

    def _check_subcategory_name(self, category_id: int, name: str, exclude_id=None) -> None:
        for s in self._subcategories.values():
            if s["category_id"] == category_id and s["name"] == name and s["id"] != exclude_id:
                raise BackendError(f"DB Error: subcategory '{name}' already exists in category {category_id}")

    def _require(self, table: dict[int, dict], id: int, label: str) -> dict:
        if id not in table:
            raise BackendError(f"DB Error: {label} {id} does not exist")
        return table[id]

    async def list_categories(self) -> list[dict]:
        await asyncio.sleep(0)
        return [dict(c) for c in self._categories.values()]

    async def list_subcategories(self) -> list[dict]:
        await asyncio.sleep(0)
        return [dict(s) for s in self._subcategories.values()]

    async def list_operations(self) -> list[dict]:
        await asyncio.sleep(0)
        ordered = sorted(self._operations.values(), key=lambda o: (o["date"], o["id"]), reverse=True)
        return [dict(o) for o in ordered]

    async def create_category(self, name: str) -> dict:
        await asyncio.sleep(0)
        self._check_category_name(name)
        record = {"id": self._next_id("category"), "name": name}
        self._categories[record["id"]] = record
        return dict(record)

    async def update_category(self, id: int, name: str) -> None:
        await asyncio.sleep(0)
        record = self._require(self._categories, id, "category")
        self._check_category_name(name, exclude_id=id)
        record["name"] = name

    async def remove_category(self, id: int) -> None:
        await asyncio.sleep(0)
        self._categories.pop(id, None)
        for sub_id in [s["id"] for s in self._subcategories.values() if s["category_id"] == id]:
            self._drop_subcategory(sub_id)

    async def create_subcategory(self, category_id: int, name: str) -> dict:
        await asyncio.sleep(0)
        self._require(self._categories, category_id, "category")
        self._check_subcategory_name(category_id, name)
        record = {"id": self._next_id("subcategory"), "category_id": category_id, "name": name}
        self._subcategories[record["id"]] = record
        return dict(record)

    async def update_subcategory(self, id: int, name: str) -> None:
        await asyncio.sleep(0)
        record = self._require(self._subcategories, id, "subcategory")
        self._check_subcategory_name(record["category_id"], name, exclude_id=id)
        record["name"] = name

    async def remove_subcategory(self, id: int) -> None:
        await asyncio.sleep(0)
        self._drop_subcategory(id)

    def _drop_subcategory(self, id: int) -> None:
        self._subcategories.pop(id, None)
        for op_id in [o["id"] for o in self._operations.values() if o["subcategory_id"] == id]:
            del self._operations[op_id]

    async def create_operation(self, subcategory_id: int, date: str, value: int) -> dict:
        await asyncio.sleep(0)
        self._require(self._subcategories, subcategory_id, "subcategory")
        record = {
            "id": self._next_id("operation"),
            "subcategory_id": subcategory_id,
            "date": date,
            "value": value,
        }
        self._operations[record["id"]] = record
        return dict(record)

    async def update_operation(self, id: int, subcategory_id: int, date: str, value: int) -> None:
        await asyncio.sleep(0)
        record = self._require(self._operations, id, "operation")
        self._require(self._subcategories, subcategory_id, "subcategory")
        record.update(subcategory_id=subcategory_id, date=date, value=value)

    async def remove_operation(self, id: int) -> None:
        await asyncio.sleep(0)
        self._operations.pop(id, None)
