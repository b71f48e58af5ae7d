"""Report period value types for each aggregate granularity."""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Protocol

from ..errors import ValidationError
from ..utils.dates import end_of_day, start_of_day
from .paths import daily_report_path, monthly_report_path, weekly_report_path
from .term_calendar import month_bounds, term_bounds, term_info


@dataclass(frozen=True)
class PeriodParams:
    """Calendar coordinates of a usage record: the source of every period."""

    year: int
    month: int
    day: int
    term: int

    def __post_init__(self) -> None:
        try:
            info = term_info(date(self.year, self.month, self.day))
        except ValueError as e:
            raise ValidationError(
                "Invalid period date",
                {"year": self.year, "month": self.month, "day": self.day},
            ) from e
        if info.term != self.term:
            raise ValidationError(
                "Term does not match date",
                {"date": info.date.isoformat(), "term": self.term, "expected_term": info.term},
            )

    @classmethod
    def from_date(cls, day: date) -> "PeriodParams":
        info = term_info(day)
        return cls(year=info.year, month=info.month, day=info.day, term=info.term)

    @property
    def date(self) -> date:
        return date(self.year, self.month, self.day)


class ReportPeriod(Protocol):
    """What an aggregator needs to know about the period it aggregates."""

    @property
    def path(self) -> str: ...

    @property
    def label(self) -> str: ...

    def dates(self) -> tuple[date, date]: ...


@dataclass(frozen=True)
class DailyPeriod:
    year: int
    month: int
    day: int

    @property
    def path(self) -> str:
        return daily_report_path(self.year, self.month, self.day)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def dates(self) -> tuple[date, date]:
        day = date(self.year, self.month, self.day)
        return day, day


@dataclass(frozen=True)
class WeeklyPeriod:
    year: int
    month: int
    term: int

    @property
    def path(self) -> str:
        return weekly_report_path(self.year, self.month, self.term)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d} term {self.term}"

    def dates(self) -> tuple[date, date]:
        return term_bounds(self.year, self.month, self.term)


@dataclass(frozen=True)
class MonthlyPeriod:
    year: int
    month: int

    @property
    def path(self) -> str:
        return monthly_report_path(self.year, self.month)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def dates(self) -> tuple[date, date]:
        return month_bounds(self.year, self.month)


def period_bounds(period: ReportPeriod, tz: timezone) -> tuple[datetime, datetime]:
    """Aware timestamps spanning the first to the last second of a period."""
    first, last = period.dates()
    return start_of_day(first, tz), end_of_day(last, tz)


class ReportKind(str, Enum):
    """Aggregate granularity."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    def period_for(self, params: PeriodParams) -> ReportPeriod:
        """Resolve the period of this granularity that contains ``params``."""
        match self:
            case ReportKind.DAILY:
                return DailyPeriod(params.year, params.month, params.day)
            case ReportKind.WEEKLY:
                return WeeklyPeriod(params.year, params.month, params.term)
            case _:
                return MonthlyPeriod(params.year, params.month)

    def period_for_date(self, day: date) -> ReportPeriod:
        return self.period_for(PeriodParams.from_date(day))
