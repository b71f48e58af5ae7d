"""Canonical storage paths for raw records and report aggregates."""

import re
import time
from datetime import date
from typing import NamedTuple

from ..errors import ValidationError
from .term_calendar import term_info

RECORD_PATH_PATTERN = re.compile(
    r"^details/(?P<year>\d{4})/(?P<month>\d{2})/term(?P<term>[1-6])/(?P<day>\d{2})/(?P<millis>\d+)$"
)


class ReportPaths(NamedTuple):
    """Aggregate paths a single date contributes to."""

    daily: str
    weekly: str
    monthly: str


def daily_report_path(year: int, month: int, day: int) -> str:
    return f"reports/daily/{year:04d}-{month:02d}/{day:02d}"


def weekly_report_path(year: int, month: int, term: int) -> str:
    return f"reports/weekly/{year:04d}-{month:02d}/term{term}"


def monthly_report_path(year: int, month: int) -> str:
    return f"reports/monthly/{year:04d}/{month:02d}"


def report_paths_for(day: date) -> ReportPaths:
    """Resolve the daily, weekly and monthly aggregate paths of a date."""
    info = term_info(day)
    return ReportPaths(
        daily=daily_report_path(info.year, info.month, info.day),
        weekly=weekly_report_path(info.year, info.month, info.term),
        monthly=monthly_report_path(info.year, info.month),
    )


def record_path(day: date, created_at_ms: int | None = None) -> str:
    """
    Path for a raw usage record.

    The last segment is the creation time in epoch milliseconds. Two records
    created in the same millisecond for the same day collide; callers that
    create records in bulk must pass distinct ``created_at_ms`` values.
    """
    info = term_info(day)
    millis = created_at_ms if created_at_ms is not None else time.time_ns() // 1_000_000
    return f"details/{info.year:04d}/{info.month:02d}/term{info.term}/{info.day:02d}/{millis}"


def parse_record_path(path: str) -> tuple[date, int]:
    """
    Split a raw record path into its civil date and creation millis.

    Raises ValidationError when the path is malformed or its term segment
    disagrees with the date.
    """
    match = RECORD_PATH_PATTERN.match(path.strip("/"))
    if not match:
        raise ValidationError("Malformed record path", {"path": path})

    try:
        day = date(int(match["year"]), int(match["month"]), int(match["day"]))
    except ValueError as e:
        raise ValidationError("Record path has an invalid date", {"path": path}) from e

    if term_info(day).term != int(match["term"]):
        raise ValidationError(
            "Record path term does not match its date",
            {"path": path, "expected_term": term_info(day).term},
        )
    return day, int(match["millis"])
