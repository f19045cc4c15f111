from dataclasses import dataclass
from datetime import date, datetime

from ledger.aggregation import (
    Bucket,
    Grouping,
    Summary,
    category_buckets,
    group_operations,
    subcategory_buckets,
    summarize,
)
from ledger.domain import Operation
from ledger.filters import Scope, filter_operations
from ledger.ranges import DateFilter, DateRange, resolve_range
from ledger.store import EntityStore


@dataclass(frozen=True)
class LedgerReport:
    range: DateRange
    scope: Scope | None
    operations: tuple[Operation, ...]
    summary: Summary
    categories: list[Bucket]
    subcategories: list[Bucket]
    grouping: Grouping
    generation: int


class ReportService:
    """Facade running resolve -> filter -> aggregate over one store snapshot."""

    def __init__(self, store: EntityStore):
        self.store = store

    def build(
        self,
        filter_kind: DateFilter | str = DateFilter.MONTH,
        now: date | datetime | None = None,
        custom_from: str | None = None,
        custom_to: str | None = None,
        scope: Scope | None = None,
    ) -> LedgerReport:
        snap = self.store.snapshot()
        rng = resolve_range(filter_kind, now, custom_from, custom_to)
        ops = filter_operations(snap.operations, rng, scope, snap.subcategories)
        return LedgerReport(
            range=rng,
            scope=scope,
            operations=ops,
            summary=summarize(ops, snap.categories, snap.subcategories),
            categories=category_buckets(ops, snap.categories, snap.subcategories),
            subcategories=subcategory_buckets(ops, snap.subcategories),
            grouping=group_operations(ops, snap.categories, snap.subcategories),
            generation=snap.generation,
        )
