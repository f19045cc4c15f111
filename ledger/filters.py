from dataclasses import dataclass
from typing import Callable, Collection, Iterable, Iterator

from ledger.domain import Operation, Subcategory
from ledger.functional import pipe
from ledger.ranges import DateRange

Predicate = Callable[[Operation], bool]


@dataclass(frozen=True)
class Scope:
    """Restrict operations to one category or one subcategory (not both)."""
    category_id: int | None = None
    subcategory_id: int | None = None

    def __post_init__(self):
        if self.category_id is not None and self.subcategory_id is not None:
            raise ValueError("Scope takes either category_id or subcategory_id, not both")


def by_date_range(rng: DateRange) -> Predicate:
    def _filter(op: Operation) -> bool:
        return rng.contains(op.date)

    return _filter


def by_subcategory(subcategory_id: int) -> Predicate:
    def _filter(op: Operation) -> bool:
        return op.subcategory_id == subcategory_id

    return _filter


def by_subcategories(subcategory_ids: Collection[int]) -> Predicate:
    ids = frozenset(subcategory_ids)

    def _filter(op: Operation) -> bool:
        return op.subcategory_id in ids

    return _filter


def scope_predicate(scope: Scope | None, subcategories: Iterable[Subcategory]) -> Predicate | None:
    if scope is None:
        return None
    if scope.subcategory_id is not None:
        return by_subcategory(scope.subcategory_id)
    if scope.category_id is not None:
        return by_subcategories(s.id for s in subcategories if s.category_id == scope.category_id)
    return None


def iter_operations(ops: Iterable[Operation], pred: Predicate) -> Iterator[Operation]:
    for op in ops:
        if pred(op):
            yield op


def filter_operations(
    ops: Iterable[Operation],
    rng: DateRange,
    scope: Scope | None = None,
    subcategories: Iterable[Subcategory] = (),
) -> tuple[Operation, ...]:
    """Keep operations inside ``rng`` and ``scope``, preserving input order.

    ``subcategories`` is needed only for a category scope, to find which
    subcategory ids belong to it.
    """
    stages = [lambda xs: iter_operations(xs, by_date_range(rng))]
    pred = scope_predicate(scope, subcategories)
    if pred is not None:
        stages.append(lambda xs: iter_operations(xs, pred))
    return tuple(pipe(ops, *stages))
