"""Resolve symbolic period filters into inclusive local-date bounds."""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import NamedTuple


class DateFilter(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


class DateRange(NamedTuple):
    start: str | None  # None means unbounded
    end: str | None

    def contains(self, day: str) -> bool:
        return (self.start is None or day >= self.start) and (self.end is None or day <= self.end)

    def is_empty(self) -> bool:
        return self.start is not None and self.end is not None and self.start > self.end


def format_date_local(d: date | datetime) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def _local_today(now: date | datetime | None) -> date:
    if now is None:
        return datetime.now().date()
    if isinstance(now, datetime):
        # aware instants are converted to the local calendar first
        return (now.astimezone() if now.tzinfo else now).date()
    return now


def resolve_range(
    kind: DateFilter | str,
    now: date | datetime | None = None,
    custom_from: str | None = None,
    custom_to: str | None = None,
) -> DateRange:
    kind = DateFilter(kind)
    today = _local_today(now)

    if kind is DateFilter.DAY:
        start = end = today
    elif kind is DateFilter.WEEK:
        # Sunday..Saturday; weekday() has Monday == 0
        days_since_sunday = (today.weekday() + 1) % 7
        start = today - timedelta(days=days_since_sunday)
        end = start + timedelta(days=6)
    elif kind is DateFilter.MONTH:
        start = today.replace(day=1)
        if start.month == 12:
            next_month = start.replace(year=start.year + 1, month=1)
        else:
            next_month = start.replace(month=start.month + 1)
        end = next_month - timedelta(days=1)
    elif kind is DateFilter.YEAR:
        start = date(today.year, 1, 1)
        end = date(today.year, 12, 31)
    else:
        return DateRange(custom_from or None, custom_to or None)

    return DateRange(format_date_local(start), format_date_local(end))
