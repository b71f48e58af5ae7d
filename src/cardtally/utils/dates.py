"""Civil timezone helpers.

All periods are reasoned about in one fixed UTC offset, never a DST-aware zone.
"""

from datetime import date, datetime, timedelta, timezone

from ..config import settings


def civil_timezone(offset_hours: int | None = None) -> timezone:
    """Return the fixed-offset civil timezone."""
    hours = settings.civil_utc_offset_hours if offset_hours is None else offset_hours
    return timezone(timedelta(hours=hours))


def civil_now(tz: timezone | None = None) -> datetime:
    """Current time in the civil timezone."""
    return datetime.now(tz or civil_timezone())


def from_timestamp(timestamp: float, tz: timezone | None = None) -> datetime:
    """Convert a POSIX timestamp to an aware civil datetime."""
    return datetime.fromtimestamp(timestamp, tz or civil_timezone())


def start_of_day(day: date, tz: timezone) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=tz)


def end_of_day(day: date, tz: timezone) -> datetime:
    return datetime(day.year, day.month, day.day, 23, 59, 59, tzinfo=tz)


def format_date_range(start: date, end: date, fmt: str = "%Y/%m/%d") -> str:
    """Format a period like ``2025/04/01 - 2025/04/05``."""
    return f"{start.strftime(fmt)} - {end.strftime(fmt)}"
