"""Card usage and report dispatch task definitions for Procrastinate.

Tasks are not retried: a retried aggregate increment would be counted twice.
"""

import logging
from datetime import datetime

from ..config import settings
from ..dependencies import open_report_services
from ..services.recalculation import recent_months
from ..utils.dates import civil_timezone, from_timestamp
from .worker import app

logger = logging.getLogger(__name__)


@app.task(name="record_card_usage")
async def record_card_usage(
    amount: int,
    occurred_at: str,
    card_name: str | None = None,
    where_to_use: str | None = None,
    memo: str | None = None,
) -> str:
    """Store a usage record (``occurred_at`` in ISO 8601) and update its reports."""
    when = datetime.fromisoformat(occurred_at)
    async with open_report_services() as services:
        path, _ = await services.usage.record_usage(
            amount,
            when,
            card_name=card_name,
            where_to_use=where_to_use,
            memo=memo,
        )
    return path


@app.task(name="change_card_usage_amount")
async def change_card_usage_amount(path: str, amount: int) -> None:
    async with open_report_services() as services:
        await services.usage.change_amount(path, amount)


@app.task(name="deactivate_card_usage")
async def deactivate_card_usage(path: str) -> None:
    async with open_report_services() as services:
        await services.usage.deactivate(path)


@app.task(name="reactivate_card_usage")
async def reactivate_card_usage(path: str) -> None:
    async with open_report_services() as services:
        await services.usage.reactivate(path)


@app.periodic(cron=settings.dispatch_cron)
@app.task(name="dispatch_scheduled_reports", queueing_lock="dispatch_scheduled_reports")
async def dispatch_scheduled_reports(timestamp: int) -> dict:
    """Send yesterday's closed daily, weekly and monthly summaries."""
    now = from_timestamp(timestamp, civil_timezone())
    async with open_report_services() as services:
        summary = await services.dispatcher.run(now)

    if not summary.ok:
        failed = [r.kind for r in summary.results if r.failed]
        logger.error(f"Scheduled dispatch for {summary.target_date} had failures: {failed}")
    return summary.model_dump(mode="json")


@app.task(name="recalculate_month_reports", queueing_lock="recalculate_reports")
async def recalculate_month_reports(year: int, month: int, dry_run: bool = False) -> dict:
    """Rebuild one month's aggregates from its active usage records."""
    async with open_report_services() as services:
        summary = await services.recalculator.recalculate_month(
            year, month, executed_by="recalculation-task", dry_run=dry_run
        )
    return summary.model_dump(mode="json")


@app.periodic(cron=settings.recalculation_cron)
@app.task(name="recalculate_recent_reports", queueing_lock="recalculate_reports")
async def recalculate_recent_reports(timestamp: int) -> list[dict]:
    """Rebuild the months touched by the last ``recalculation_days`` days."""
    today = from_timestamp(timestamp, civil_timezone()).date()
    summaries = []
    async with open_report_services() as services:
        for year, month in recent_months(today, settings.recalculation_days):
            summary = await services.recalculator.recalculate_month(
                year, month, executed_by="recalculation-schedule"
            )
            summaries.append(summary.model_dump(mode="json"))
    return summaries
