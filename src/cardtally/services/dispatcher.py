"""Daily scheduled dispatch of period summaries."""

import logging
from datetime import datetime, timedelta, timezone

from ..schemas.dispatch import DispatchResult, DispatchStatus, DispatchSummary
from ..utils.dates import civil_now, civil_timezone
from .periods import DailyPeriod, MonthlyPeriod, ReportPeriod, WeeklyPeriod
from .report_aggregator import ReportAggregator
from .term_calendar import TermInfo, term_info

logger = logging.getLogger(__name__)


def weekly_target(yesterday: TermInfo) -> WeeklyPeriod:
    """
    The weekly aggregate that closed with ``yesterday``.

    Terms are clamped to their month, so the term that just ended always
    belongs to yesterday's month, including when the calendar week it sits
    in carries on into today's month.
    """
    return WeeklyPeriod(yesterday.year, yesterday.month, yesterday.term)


class ScheduledDispatcher:
    """
    Sends yesterday's closed periods: always the daily summary, the weekly one
    when yesterday ended a term, the monthly one when it ended a month.

    Steps are isolated: a failing step is reported in the summary and the
    remaining steps still run. Re-running is safe since each aggregate is
    sent at most once.
    """

    def __init__(
        self,
        daily: ReportAggregator,
        weekly: ReportAggregator,
        monthly: ReportAggregator,
        tz: timezone | None = None,
    ):
        self.daily = daily
        self.weekly = weekly
        self.monthly = monthly
        self.tz = tz or civil_timezone()

    async def run(self, now: datetime | None = None) -> DispatchSummary:
        now = civil_now(self.tz) if now is None else now.astimezone(self.tz)
        today = now.date()
        yesterday = term_info(today - timedelta(days=1))

        summary = DispatchSummary(target_date=yesterday.date)
        logger.info(f"Scheduled dispatch for {yesterday.date.isoformat()} (term {yesterday.term})")

        summary.results.append(
            await self._step(self.daily, DailyPeriod(yesterday.year, yesterday.month, yesterday.day))
        )

        if yesterday.is_last_day_of_term:
            summary.results.append(await self._step(self.weekly, weekly_target(yesterday)))

        if yesterday.is_last_day_of_month:
            summary.results.append(
                await self._step(self.monthly, MonthlyPeriod(yesterday.year, yesterday.month))
            )

        for result in summary.results:
            logger.info(f"Dispatch {result.kind} {result.path}: {result.status.value}")
        return summary

    async def _step(self, aggregator: ReportAggregator, period: ReportPeriod) -> DispatchResult:
        try:
            return await aggregator.dispatch(period)
        except Exception as e:
            logger.exception(f"{aggregator.kind.value} dispatch for {period.path} failed")
            return DispatchResult(
                kind=aggregator.kind.value,
                path=period.path,
                status=DispatchStatus.ERROR,
                message=str(e),
            )
