"""Summaries and the category -> subcategory -> operations tree.

Nothing here raises on stale references. Totals are computed over the raw
filtered operations; the grouped tree skips operations whose subcategory or
category cannot be resolved and reports how many were skipped.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Sequence

from ledger.domain import Category, Operation, Subcategory

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


class Summary(NamedTuple):
    count: int
    total_value: int
    category_count: int
    subcategory_count: int


class Bucket(NamedTuple):
    id: int
    name: str
    total: int
    percentage: float


@dataclass
class SubcategoryGroup:
    subcategory: Subcategory
    operations: list[Operation] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(op.value for op in self.operations)


@dataclass
class CategoryGroup:
    category: Category
    subcategories: list[SubcategoryGroup] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(g.total for g in self.subcategories)

    @property
    def operation_count(self) -> int:
        return sum(len(g.operations) for g in self.subcategories)


class Grouping(NamedTuple):
    groups: list[CategoryGroup]
    dropped: int  # operations skipped for unresolvable references


def name_key(name: str) -> tuple[str, str]:
    return name.casefold(), name


def percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return 100 * part / total


def summarize(
    ops: Sequence[Operation],
    categories: Sequence[Category] = (),
    subcategories: Sequence[Subcategory] = (),
) -> Summary:
    return Summary(
        count=len(ops),
        total_value=sum(op.value for op in ops),
        category_count=len(categories),
        subcategory_count=len(subcategories),
    )


def subcategory_totals(ops: Iterable[Operation]) -> dict[int, int]:
    totals: dict[int, int] = defaultdict(int)
    for op in ops:
        totals[op.subcategory_id] += op.value
    return dict(totals)


def category_totals(ops: Iterable[Operation], subcategories: Iterable[Subcategory]) -> dict[int, int]:
    """Sum operations per owning category.

    Operations whose subcategory is unknown have no category to land in and
    are left out.
    """
    owner = {s.id: s.category_id for s in subcategories}
    totals: dict[int, int] = defaultdict(int)
    for op in ops:
        if op.subcategory_id in owner:
            totals[owner[op.subcategory_id]] += op.value
    return dict(totals)


def _buckets(totals: dict[int, int], names: dict[int, str], grand_total: int) -> list[Bucket]:
    # sorted() is stable, so equal totals keep encounter order
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        Bucket(id=bid, name=names.get(bid, UNKNOWN), total=total,
               percentage=percentage(total, grand_total))
        for bid, total in ordered
    ]


def category_buckets(
    ops: Sequence[Operation],
    categories: Iterable[Category],
    subcategories: Iterable[Subcategory],
) -> list[Bucket]:
    totals = category_totals(ops, subcategories)
    return _buckets(totals, {c.id: c.name for c in categories}, sum(op.value for op in ops))


def subcategory_buckets(ops: Sequence[Operation], subcategories: Iterable[Subcategory]) -> list[Bucket]:
    totals = subcategory_totals(ops)
    return _buckets(totals, {s.id: s.name for s in subcategories}, sum(op.value for op in ops))


def group_operations(
    ops: Iterable[Operation],
    categories: Iterable[Category],
    subcategories: Iterable[Subcategory],
) -> Grouping:
    subs_by_id = {s.id: s for s in subcategories}
    cats_by_id = {c.id: c for c in categories}
    grouped: dict[int, tuple[Category, dict[int, SubcategoryGroup]]] = {}
    dropped = 0

    for op in ops:
        sub = subs_by_id.get(op.subcategory_id)
        cat = cats_by_id.get(sub.category_id) if sub is not None else None
        if cat is None:
            dropped += 1
            continue
        _, sub_groups = grouped.setdefault(cat.id, (cat, {}))
        sub_groups.setdefault(sub.id, SubcategoryGroup(sub)).operations.append(op)

    if dropped:
        logger.debug("Skipped %d operations with unresolvable references", dropped)

    groups = [
        CategoryGroup(cat, sorted(sub_groups.values(), key=lambda g: name_key(g.subcategory.name)))
        for cat, sub_groups in grouped.values()
    ]
    groups.sort(key=lambda g: name_key(g.category.name))
    return Grouping(groups, dropped)
