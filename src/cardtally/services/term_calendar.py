"""Week-of-month ("term") partitioning of civil dates.

A term is the Sunday-Saturday week containing a date, clamped so it never
leaves the date's month. Term numbers follow ``ceil((day + weekday_of_1st) / 7)``
with Sunday as weekday 0, so a month has 4 to 6 terms.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..errors import ValidationError

SATURDAY = 5  # date.weekday()


@dataclass(frozen=True)
class TermInfo:
    """Calendar position of a single civil date."""

    year: int
    month: int
    day: int
    term: int
    term_start: date
    term_end: date
    is_last_day_of_term: bool
    is_last_day_of_month: bool

    @property
    def date(self) -> date:
        return date(self.year, self.month, self.day)

    @property
    def spans_month_boundary(self) -> bool:
        """True when the natural Sunday-Saturday week was clamped."""
        return (self.term_end - self.term_start).days < 6


def _sunday_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def _as_date(value: date) -> date:
    # datetime is a date subclass; keep only the civil calendar day
    if isinstance(value, datetime):
        return value.date()
    return value


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    _validate_month(year, month)
    return date(year, month, 1), last_day_of_month(year, month)


def term_number(day: date) -> int:
    """Term (1-based week of month) a date falls in."""
    day = _as_date(day)
    offset = _sunday_weekday(day.replace(day=1))
    return (day.day + offset + 6) // 7


def term_info(day: date) -> TermInfo:
    """Compute term number, clamped term bounds and period-end flags for a date."""
    day = _as_date(day)
    first = day.replace(day=1)
    last = last_day_of_month(day.year, day.month)

    natural_start = day - timedelta(days=_sunday_weekday(day))
    natural_end = natural_start + timedelta(days=6)
    term_start = max(natural_start, first)
    term_end = min(natural_end, last)

    return TermInfo(
        year=day.year,
        month=day.month,
        day=day.day,
        term=term_number(day),
        term_start=term_start,
        term_end=term_end,
        is_last_day_of_term=day.weekday() == SATURDAY or day == term_end,
        is_last_day_of_month=day == last,
    )


def terms_in_month(year: int, month: int) -> int:
    """Number of terms the month is partitioned into."""
    _validate_month(year, month)
    return term_number(last_day_of_month(year, month))


def term_bounds(year: int, month: int, term: int) -> tuple[date, date]:
    """First and last day of a term within a month."""
    count = terms_in_month(year, month)
    if not 1 <= term <= count:
        raise ValidationError(
            "Term does not exist in month",
            {"year": year, "month": month, "term": term, "terms_in_month": count},
        )
    offset = _sunday_weekday(date(year, month, 1))
    start_day = max(1, 7 * (term - 1) - offset + 1)
    info = term_info(date(year, month, start_day))
    return info.term_start, info.term_end


def _validate_month(year: int, month: int) -> None:
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise ValidationError("Invalid year/month", {"year": year, "month": month})
