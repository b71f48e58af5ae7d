"""Tests for storage paths and period parameters."""

from datetime import date, timedelta, timezone

import pytest

from cardtally.errors import ValidationError
from cardtally.services.paths import parse_record_path, record_path, report_paths_for
from cardtally.services.periods import PeriodParams, ReportKind, WeeklyPeriod, period_bounds

JST = timezone(timedelta(hours=9))


def test_report_paths_for_date():
    paths = report_paths_for(date(2025, 4, 6))
    assert paths.daily == "reports/daily/2025-04/06"
    assert paths.weekly == "reports/weekly/2025-04/term2"
    assert paths.monthly == "reports/monthly/2025/04"


def test_record_path_layout():
    path = record_path(date(2025, 3, 31), created_at_ms=1743433200000)
    assert path == "details/2025/03/term6/31/1743433200000"


def test_parse_record_path():
    day, millis = parse_record_path("/details/2025/04/term2/06/1743900000000/")
    assert day == date(2025, 4, 6)
    assert millis == 1743900000000


@pytest.mark.parametrize(
    "path",
    [
        "details/2025/04/term1/06/1743900000000",  # term disagrees with date
        "details/2025/02/term5/30/1",  # no such date
        "details/2025/04/term7/06/1",
        "reports/daily/2025-04/06",
        "details/2025/04/term2/06",
    ],
)
def test_parse_record_path_rejects(path):
    with pytest.raises(ValidationError):
        parse_record_path(path)


def test_period_params_validate_term():
    with pytest.raises(ValidationError):
        PeriodParams(2025, 4, 6, 1)
    with pytest.raises(ValidationError):
        PeriodParams(2025, 2, 30, 5)


def test_kind_resolves_periods():
    params = PeriodParams.from_date(date(2025, 4, 6))
    assert ReportKind.DAILY.period_for(params).path == "reports/daily/2025-04/06"
    assert ReportKind.WEEKLY.period_for(params).path == "reports/weekly/2025-04/term2"
    assert ReportKind.MONTHLY.period_for(params).path == "reports/monthly/2025/04"


def test_period_bounds_cover_whole_days():
    start, end = period_bounds(WeeklyPeriod(2025, 4, 1), JST)
    assert start.isoformat() == "2025-04-01T00:00:00+09:00"
    assert end.isoformat() == "2025-04-05T23:59:59+09:00"
