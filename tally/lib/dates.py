import calendar
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, tzinfo

from dateutil import parser as dateutil_parser

__all__ = [
    "day_range",
    "days_in_month",
    "end_of_month",
    "format_timestamp",
    "parse_day",
    "parse_timestamp",
    "start_of_day",
    "start_of_month",
    "to_day",
    "to_local_naive",
]

Day = date | datetime


def start_of_day(value: Day, tz: tzinfo | None = None) -> datetime:
    """Truncate to midnight of the calendar day `value` falls on.

    Aware datetimes are converted into `tz` first (the local zone when `tz` is
    None), so the day boundary is the one of that calendar. Naive values are
    local wall time.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime.combine(value, time.min, tzinfo=tz)


def to_day(value: Day, tz: tzinfo | None = None) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def start_of_month(value: Day) -> date:
    return to_day(value).replace(day=1)


def days_in_month(value: Day) -> int:
    d = to_day(value)
    return calendar.monthrange(d.year, d.month)[1]


def end_of_month(value: Day) -> date:
    d = to_day(value)
    return d.replace(day=days_in_month(d))


def day_range(start: date, end: date) -> Iterator[date]:
    """Every day from start to end inclusive; nothing when start > end."""
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp ('Z' suffix and date-only forms accepted)."""
    if not isinstance(value, str) or not value:
        raise ValueError(f"invalid timestamp {value!r}")
    try:
        return dateutil_parser.isoparse(value)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"invalid timestamp {value!r}") from e


def to_local_naive(value: datetime) -> datetime:
    """Aware values become local wall time without tzinfo; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def parse_day(value: str, today: date) -> date:
    """Parse 'today', 'yesterday', '-N' (days ago) or YYYY-MM-DD."""
    lowered = value.strip().lower()
    if lowered == "today":
        return today
    if lowered == "yesterday":
        return today - timedelta(days=1)
    if lowered.startswith("-") and lowered[1:].isdigit():
        return today - timedelta(days=int(lowered[1:]))
    return date.fromisoformat(lowered)
