"""Tests for the term calendar."""

from datetime import date, datetime, timedelta

import pytest

from cardtally.errors import ValidationError
from cardtally.services.term_calendar import (
    month_bounds,
    term_bounds,
    term_info,
    term_number,
    terms_in_month,
)


def test_first_of_month_midweek():
    """2025-04-01 is a Tuesday: term 1 runs Apr 1 to Saturday Apr 5."""
    info = term_info(date(2025, 4, 1))
    assert info.term == 1
    assert info.term_start == date(2025, 4, 1)
    assert info.term_end == date(2025, 4, 5)
    assert not info.is_last_day_of_term
    assert not info.is_last_day_of_month
    assert info.spans_month_boundary


def test_saturday_ends_term():
    info = term_info(date(2025, 4, 5))
    assert info.term == 1
    assert info.is_last_day_of_term


def test_sunday_starts_new_term():
    info = term_info(date(2025, 4, 6))
    assert info.term == 2
    assert info.term_start == date(2025, 4, 6)
    assert info.term_end == date(2025, 4, 12)
    assert not info.spans_month_boundary


def test_last_day_of_month_ends_term():
    """2025-04-30 is a Wednesday; the term is clamped to the month."""
    info = term_info(date(2025, 4, 30))
    assert info.term == 5
    assert info.term_start == date(2025, 4, 27)
    assert info.term_end == date(2025, 4, 30)
    assert info.is_last_day_of_term
    assert info.is_last_day_of_month


def test_month_can_have_six_terms():
    """March 2025 starts on a Saturday, so its 30th and 31st fall in term 6."""
    assert term_number(date(2025, 3, 1)) == 1
    assert term_number(date(2025, 3, 2)) == 2
    assert term_number(date(2025, 3, 30)) == 6
    assert term_number(date(2025, 3, 31)) == 6
    assert terms_in_month(2025, 3) == 6
    assert term_bounds(2025, 3, 6) == (date(2025, 3, 30), date(2025, 3, 31))


def test_month_starting_on_sunday():
    """June 2025 starts on a Sunday: term 1 is a full week."""
    assert term_bounds(2025, 6, 1) == (date(2025, 6, 1), date(2025, 6, 7))
    assert terms_in_month(2025, 6) == 5


def test_datetime_input_uses_calendar_day():
    info = term_info(datetime(2025, 4, 6, 23, 59))
    assert info.date == date(2025, 4, 6)
    assert info.term == 2


@pytest.mark.parametrize("year", [2024, 2025, 2026])
def test_terms_partition_every_month(year):
    """Terms of a month cover each day exactly once and agree with term_info."""
    for month in range(1, 13):
        first, last = month_bounds(year, month)
        covered = []
        for term in range(1, terms_in_month(year, month) + 1):
            start, end = term_bounds(year, month, term)
            assert start.month == month and end.month == month
            day = start
            while day <= end:
                assert term_info(day).term == term
                assert term_info(day).is_last_day_of_term == (day.weekday() == 5 or day == last)
                covered.append(day)
                day += timedelta(days=1)
        expected = [first + timedelta(days=i) for i in range((last - first).days + 1)]
        assert covered == expected


@pytest.mark.parametrize("term", [0, 6, 7])
def test_term_bounds_rejects_missing_terms(term):
    # April 2025 has five terms
    with pytest.raises(ValidationError):
        term_bounds(2025, 4, term)


def test_month_bounds_rejects_bad_month():
    with pytest.raises(ValidationError):
        month_bounds(2025, 13)


def test_leap_february():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert term_info(date(2024, 2, 29)).is_last_day_of_month
