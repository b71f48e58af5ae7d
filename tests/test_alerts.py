"""Tests for threshold alerts."""

from datetime import date, datetime, timedelta, timezone

import pytest

from cardtally.schemas.reports import AlertFlags, ReportAggregate
from cardtally.schemas.thresholds import ThresholdLevels
from cardtally.services.alerts import ThresholdAlertEvaluator
from cardtally.services.periods import MonthlyPeriod, PeriodParams, ReportKind, WeeklyPeriod

JST = timezone(timedelta(hours=9))

APRIL_6 = PeriodParams.from_date(date(2025, 4, 6))
WEEK = WeeklyPeriod(2025, 4, 2)
MONTH = MonthlyPeriod(2025, 4)


def make_aggregate(total_amount: int, **flags: bool) -> ReportAggregate:
    now = datetime(2025, 4, 6, 12, tzinfo=JST)
    return ReportAggregate(
        total_amount=total_amount,
        total_count=1,
        period_start=now,
        period_end=now,
        alert_flags=AlertFlags(**flags),
        last_updated=now,
        last_updated_by="system",
    )


@pytest.fixture
def evaluator():
    return ThresholdAlertEvaluator(
        ReportKind.WEEKLY,
        ThresholdLevels(level1=1000, level2=5000, level3=10000),
    )


@pytest.mark.parametrize(
    ("amount", "flags", "expected"),
    [
        (999, {}, None),
        (1000, {}, 1),
        (5000, {}, 2),
        (12000, {}, 3),
        (12000, {"level3": True}, 2),
        (12000, {"level3": True, "level2": True}, 1),
        (12000, {"level1": True, "level2": True, "level3": True}, None),
        (4000, {"level1": True}, None),
    ],
)
def test_pending_level(evaluator, amount, flags, expected):
    assert evaluator.pending_level(make_aggregate(amount, **flags)) == expected


def test_daily_has_no_alerts():
    with pytest.raises(ValueError):
        ThresholdAlertEvaluator(ReportKind.DAILY, ThresholdLevels(level1=1, level2=2, level3=3))


def test_thresholds_must_ascend():
    with pytest.raises(ValueError):
        ThresholdLevels(level1=5000, level2=1000, level3=10000)


async def test_level1_fires_once(services, notifier, store):
    await services.weekly.process_report("a", 500, APRIL_6)
    assert notifier.alerts() == []

    await services.weekly.process_report("b", 600, APRIL_6)
    await services.weekly.process_report("c", 100, APRIL_6)

    alerts = notifier.alerts("weekly")
    assert len(alerts) == 1
    assert alerts[0].alert_level == 1
    assert alerts[0].total_amount == 1100
    assert alerts[0].period == "2025/04/06 - 2025/04/12"

    flags = store.data(WEEK.path)["alert_flags"]
    assert flags == {"level1": True, "level2": False, "level3": False}


async def test_jump_fires_only_highest_level(services, notifier, store):
    await services.weekly.process_report("a", 12000, APRIL_6)

    alerts = notifier.alerts("weekly")
    assert [a.alert_level for a in alerts] == [3]
    assert store.data(WEEK.path)["alert_flags"] == {"level1": False, "level2": False, "level3": True}


async def test_lower_levels_fire_on_later_updates_one_at_a_time(services, notifier):
    await services.weekly.process_report("a", 12000, APRIL_6)
    await services.weekly.process_report("b", 10, APRIL_6)
    await services.weekly.process_report("c", 10, APRIL_6)
    await services.weekly.process_report("d", 10, APRIL_6)

    assert [a.alert_level for a in notifier.alerts("weekly")] == [3, 2, 1]


async def test_failed_alert_leaves_flag_unset_and_retries(services, notifier, store):
    notifier.outcomes["weekly"] = False
    await services.weekly.process_report("a", 1500, APRIL_6)
    assert store.data(WEEK.path)["alert_flags"]["level1"] is False

    notifier.outcomes["weekly"] = True
    await services.weekly.process_report("b", 10, APRIL_6)
    assert [a.alert_level for a in notifier.alerts("weekly")] == [1]
    assert store.data(WEEK.path)["alert_flags"]["level1"] is True


async def test_raising_notifier_does_not_fail_the_update(services, notifier, store):
    notifier.outcomes["monthly"] = RuntimeError("webhook down")

    aggregate = await services.monthly.process_report("a", 6000, APRIL_6)

    assert aggregate.total_amount == 6000
    assert store.data(MONTH.path)["total_amount"] == 6000
    assert store.data(MONTH.path)["alert_flags"]["level1"] is False


async def test_monthly_uses_monthly_thresholds(services, notifier):
    await services.monthly.process_report("a", 4000, APRIL_6)
    assert notifier.alerts("monthly") == []

    await services.monthly.process_report("b", 6500, APRIL_6)
    alerts = notifier.alerts("monthly")
    assert [a.alert_level for a in alerts] == [2]
    assert alerts[0].period == "2025/04/01 - 2025/04/30"


async def test_amount_change_can_fire_alert(services, notifier):
    await services.weekly.process_report("a", 900, APRIL_6)
    await services.weekly.update_for_amount_change("a", APRIL_6, 200)

    assert [a.alert_level for a in notifier.alerts("weekly")] == [1]


async def test_daily_never_alerts(services, notifier):
    await services.daily.process_report("a", 50000, APRIL_6)
    assert notifier.sent == []
