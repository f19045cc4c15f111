"""In-memory mirror of categories, subcategories and operations.

:class:`EntityStore` is the only writer of the three collections. Every
mutation validates its input, calls the backend, and on success installs the
confirmed change in one synchronous step, so a reader never sees a half
applied cascade. Mutations resolve to ``Right(value)`` or ``Left(message)``
and never raise.
"""
import asyncio
import logging
from typing import Callable, Iterable, NamedTuple, TypeVar

from ledger.backend import Backend
from ledger.domain import Category, Operation, Subcategory
from ledger.events import (
    ENTITY_CREATED,
    ENTITY_REMOVED,
    ENTITY_UPDATED,
    STORE_ERROR,
    STORE_RELOADED,
    EventBus,
)
from ledger.functional import (
    Either,
    Left,
    Maybe,
    Right,
    find_by_id,
    validate_date,
    validate_name,
    validate_selection,
    validate_value,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

STALE_SNAPSHOT = "Stale snapshot discarded"


class Snapshot(NamedTuple):
    categories: tuple[Category, ...]
    subcategories: tuple[Subcategory, ...]
    operations: tuple[Operation, ...]
    generation: int


class Removal(NamedTuple):
    category_ids: frozenset
    subcategory_ids: frozenset
    operation_ids: frozenset


def _parse(entity_cls: type[T], payload, submitted: dict) -> Either[str, T]:
    # creation commands may answer with the full record or only {"id": n}
    if isinstance(payload, int) and not isinstance(payload, bool):
        payload = {"id": payload}
    if not isinstance(payload, dict):
        return Left(f"Malformed backend response: {payload!r}")
    try:
        return Right(entity_cls.from_dict({**submitted, **payload}))
    except (KeyError, TypeError, ValueError) as exc:
        return Left(f"Malformed backend response: {exc}")


class EntityStore:

    def __init__(self, backend: Backend, events: EventBus | None = None):
        self._backend = backend
        self.events = events if events is not None else EventBus()
        self._categories: tuple[Category, ...] = ()
        self._subcategories: tuple[Subcategory, ...] = ()
        self._operations: tuple[Operation, ...] = ()
        self._generation = 0
        # bumped only by mutations, lets an in-flight reload detect it is stale
        self._mutation_seq = 0
        self.loading = False
        self.ready = False
        self.error: str | None = None

    # -- read side ---------------------------------------------------------

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._categories

    @property
    def subcategories(self) -> tuple[Subcategory, ...]:
        return self._subcategories

    @property
    def operations(self) -> tuple[Operation, ...]:
        return self._operations

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> Snapshot:
        return Snapshot(self._categories, self._subcategories, self._operations, self._generation)

    def find_category(self, category_id: int) -> Maybe[Category]:
        return find_by_id(self._categories, category_id)

    def find_subcategory(self, subcategory_id: int) -> Maybe[Subcategory]:
        return find_by_id(self._subcategories, subcategory_id)

    def find_operation(self, operation_id: int) -> Maybe[Operation]:
        return find_by_id(self._operations, operation_id)

    def subcategories_of(self, category_id: int) -> tuple[Subcategory, ...]:
        return tuple(s for s in self._subcategories if s.category_id == category_id)

    def operations_of(self, subcategory_id: int) -> tuple[Operation, ...]:
        return tuple(o for o in self._operations if o.subcategory_id == subcategory_id)

    def operations_of_category(self, category_id: int) -> tuple[Operation, ...]:
        sub_ids = {s.id for s in self.subcategories_of(category_id)}
        return tuple(o for o in self._operations if o.subcategory_id in sub_ids)

    # -- installation ------------------------------------------------------

    def _install(self, categories=None, subcategories=None, operations=None, mutation: bool = True) -> None:
        if categories is not None:
            self._categories = tuple(categories)
        if subcategories is not None:
            self._subcategories = tuple(subcategories)
        if operations is not None:
            self._operations = tuple(operations)
        self._generation += 1
        if mutation:
            self._mutation_seq += 1

    def _prune_orphans(self) -> int:
        cat_ids = {c.id for c in self._categories}
        subs = tuple(s for s in self._subcategories if s.category_id in cat_ids)
        sub_ids = {s.id for s in subs}
        ops = tuple(o for o in self._operations if o.subcategory_id in sub_ids)
        dropped = (len(self._subcategories) - len(subs)) + (len(self._operations) - len(ops))
        if dropped:
            logger.warning("Pruned %d orphaned records after partial refresh", dropped)
            self._subcategories = subs
            self._operations = ops
        return dropped

    def _require(self, items: Iterable[T], item_id: int, label: str) -> Either[str, T]:
        found = find_by_id(items, item_id)
        if found.is_none():
            return Left(f"{label} not found")
        return Right(found.get_or_else(None))

    async def _call(self, command: str, *args) -> Either[str, object]:
        logger.debug("Backend call %s%r", command, args)
        try:
            result = await getattr(self._backend, command)(*args)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error("Backend call %s failed: %s", command, message)
            return Left(message)
        return Right(result)

    # -- loading -----------------------------------------------------------

    async def load_all(self) -> Either[str, Snapshot]:
        """Fetch all three collections concurrently and install them together.

        A reload that loses a race against a mutation is discarded so the
        newer state survives; the caller may simply reload again.
        """
        self.loading = True
        self.error = None
        started_at = self._mutation_seq
        try:
            raw_cats, raw_subs, raw_ops = await asyncio.gather(
                self._backend.list_categories(),
                self._backend.list_subcategories(),
                self._backend.list_operations(),
            )
            categories = tuple(Category.from_dict(c) for c in raw_cats)
            subcategories = tuple(Subcategory.from_dict(s) for s in raw_subs)
            operations = tuple(Operation.from_dict(o) for o in raw_ops)
        except Exception as exc:
            message = str(exc) or "Error loading data"
            logger.error("Error loading data: %s", message)
            self.error = message
            self.events.publish(STORE_ERROR, {"error": message})
            return Left(message)
        finally:
            self.loading = False

        if self._mutation_seq != started_at:
            logger.warning("Discarding reload started before %d newer mutation(s)",
                           self._mutation_seq - started_at)
            return Left(STALE_SNAPSHOT)

        self._install(categories, subcategories, operations, mutation=False)
        self.ready = True
        logger.info("Loaded %d categories, %d subcategories, %d operations",
                    len(categories), len(subcategories), len(operations))
        self.events.publish(STORE_RELOADED, {"generation": self._generation})
        return Right(self.snapshot())

    async def _refresh(self, command: str, entity_cls, field: str) -> Either[str, tuple]:
        result = await self._call(command)
        if result.is_left():
            self.error = result.get_error()
            return result
        try:
            items = tuple(entity_cls.from_dict(r) for r in result.get_or_else([]))
        except (KeyError, TypeError, ValueError) as exc:
            self.error = f"Malformed backend response: {exc}"
            return Left(self.error)
        self._install(**{field: items})
        self._prune_orphans()
        self.events.publish(STORE_RELOADED, {"generation": self._generation, "kind": field})
        return Right(getattr(self, field))

    async def refresh_categories(self) -> Either[str, tuple[Category, ...]]:
        return await self._refresh("list_categories", Category, "categories")

    async def refresh_subcategories(self) -> Either[str, tuple[Subcategory, ...]]:
        return await self._refresh("list_subcategories", Subcategory, "subcategories")

    async def refresh_operations(self) -> Either[str, tuple[Operation, ...]]:
        return await self._refresh("list_operations", Operation, "operations")

    # -- creation ----------------------------------------------------------

    async def _create(self, entity_cls, command: str, submitted: dict,
                      parent_alive: Callable[[], bool], field: str, kind: str) -> Either:
        result = await self._call(command, *submitted.values())
        parsed = result.bind(lambda payload: _parse(entity_cls, payload, submitted))
        if parsed.is_left():
            return parsed
        entity = parsed.get_or_else(None)
        if not parent_alive():
            # parent was removed while the backend call was in flight
            logger.warning("Dropping %s %s created under a removed parent", kind, entity.id)
            return Left(f"{kind.capitalize()} parent no longer exists")
        self._install(**{field: getattr(self, field) + (entity,)})
        self.events.publish(ENTITY_CREATED, {"kind": kind, "id": entity.id})
        return Right(entity)

    async def create_category(self, name: str) -> Either[str, Category]:
        checked = validate_name(name, "Category")
        if checked.is_left():
            return checked
        return await self._create(
            Category, "create_category", {"name": checked.get_or_else(name)},
            lambda: True, "categories", "category",
        )

    async def create_subcategory(self, category_id: int, name: str) -> Either[str, Subcategory]:
        checked = (
            validate_selection(category_id, "category")
            .bind(lambda cid: self._require(self._categories, cid, "Category"))
            .bind(lambda _: validate_name(name, "Subcategory"))
        )
        if checked.is_left():
            return checked
        return await self._create(
            Subcategory, "create_subcategory",
            {"category_id": category_id, "name": checked.get_or_else(name)},
            lambda: self.find_category(category_id).is_some(),
            "subcategories", "subcategory",
        )

    def _check_operation(self, subcategory_id, date, value) -> Either[str, int]:
        return (
            validate_selection(subcategory_id, "subcategory")
            .bind(lambda sid: self._require(self._subcategories, sid, "Subcategory"))
            .bind(lambda _: validate_date(date))
            .bind(lambda _: validate_value(value))
        )

    async def create_operation(self, subcategory_id: int, date: str, value: int) -> Either[str, Operation]:
        checked = self._check_operation(subcategory_id, date, value)
        if checked.is_left():
            return checked
        return await self._create(
            Operation, "create_operation",
            {"subcategory_id": subcategory_id, "date": date, "value": checked.get_or_else(value)},
            lambda: self.find_subcategory(subcategory_id).is_some(),
            "operations", "operation",
        )

    # -- update ------------------------------------------------------------

    async def _update(self, field: str, kind: str, updated, parent_alive: Callable[[], Either],
                      command: str, *args) -> Either:
        result = await self._call(command, *args)
        if result.is_left():
            return result
        items = getattr(self, field)
        if find_by_id(items, updated.id).is_none():
            logger.warning("%s %s was removed before its update completed", kind, updated.id)
            return Left(f"{kind.capitalize()} not found")
        parent = parent_alive()
        if parent.is_left():
            # new parent was removed while the backend call was in flight
            logger.warning("Dropping update of %s %s: %s", kind, updated.id, parent.get_error())
            return parent
        self._install(**{field: tuple(updated if item.id == updated.id else item for item in items)})
        self.events.publish(ENTITY_UPDATED, {"kind": kind, "id": updated.id})
        return Right(updated)

    async def update_category(self, id: int, name: str) -> Either[str, Category]:
        checked = self._require(self._categories, id, "Category").bind(
            lambda _: validate_name(name, "Category"))
        if checked.is_left():
            return checked
        clean = checked.get_or_else(name)
        return await self._update("categories", "category", Category(id=id, name=clean),
                                  lambda: Right(None), "update_category", id, clean)

    async def update_subcategory(self, id: int, name: str) -> Either[str, Subcategory]:
        current = self._require(self._subcategories, id, "Subcategory")
        checked = current.bind(lambda _: validate_name(name, "Subcategory"))
        if checked.is_left():
            return checked
        clean = checked.get_or_else(name)
        # backend keeps the owning category, so the store does too
        category_id = current.get_or_else(None).category_id
        return await self._update(
            "subcategories", "subcategory",
            Subcategory(id=id, category_id=category_id, name=clean),
            lambda: self._require(self._categories, category_id, "Category"),
            "update_subcategory", id, clean,
        )

    async def update_operation(self, id: int, subcategory_id: int, date: str, value: int) -> Either[str, Operation]:
        checked = self._require(self._operations, id, "Operation").bind(
            lambda _: self._check_operation(subcategory_id, date, value))
        if checked.is_left():
            return checked
        amount = checked.get_or_else(value)
        return await self._update(
            "operations", "operation",
            Operation(id=id, subcategory_id=subcategory_id, date=date, value=amount),
            lambda: self._require(self._subcategories, subcategory_id, "Subcategory"),
            "update_operation", id, subcategory_id, date, amount,
        )

    # -- removal -----------------------------------------------------------

    def _cascade(self, category_ids=frozenset(), subcategory_ids=frozenset(), operation_ids=frozenset()) -> Removal:
        sub_ids = set(subcategory_ids)
        sub_ids.update(s.id for s in self._subcategories if s.category_id in category_ids)
        op_ids = set(operation_ids)
        op_ids.update(o.id for o in self._operations if o.subcategory_id in sub_ids)
        return Removal(frozenset(category_ids), frozenset(sub_ids), frozenset(op_ids))

    async def _remove(self, kind: str, command: str, id: int, removal_of: Callable[[], Removal]) -> Either[str, Removal]:
        result = await self._call(command, id)
        if result.is_left():
            return result
        # computed after the round trip so records added meanwhile are included
        removal = removal_of()
        self._install(
            categories=[c for c in self._categories if c.id not in removal.category_ids],
            subcategories=[s for s in self._subcategories if s.id not in removal.subcategory_ids],
            operations=[o for o in self._operations if o.id not in removal.operation_ids],
        )
        logger.info("Removed %s %s (cascade: %d subcategories, %d operations)",
                    kind, id, len(removal.subcategory_ids), len(removal.operation_ids))
        self.events.publish(ENTITY_REMOVED, {"kind": kind, "id": id, **removal._asdict()})
        return Right(removal)

    async def remove_category(self, id: int) -> Either[str, Removal]:
        checked = self._require(self._categories, id, "Category")
        if checked.is_left():
            return checked
        return await self._remove("category", "remove_category", id,
                                  lambda: self._cascade(category_ids=frozenset({id})))

    async def remove_subcategory(self, id: int) -> Either[str, Removal]:
        checked = self._require(self._subcategories, id, "Subcategory")
        if checked.is_left():
            return checked
        return await self._remove("subcategory", "remove_subcategory", id,
                                  lambda: self._cascade(subcategory_ids=frozenset({id})))

    async def remove_operation(self, id: int) -> Either[str, Removal]:
        checked = self._require(self._operations, id, "Operation")
        if checked.is_left():
            return checked
        return await self._remove("operation", "remove_operation", id,
                                  lambda: self._cascade(operation_ids=frozenset({id})))
