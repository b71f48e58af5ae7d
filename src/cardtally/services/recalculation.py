"""Rebuilding report aggregates from raw usage records."""

import logging
from collections import defaultdict
from datetime import date, timedelta

from pydantic import ValidationError as SchemaValidationError

from ..errors import DataAccessError, ReportError, ValidationError
from ..schemas.recalculation import RecalculationSummary
from ..schemas.usage import CardUsage
from .document_store import DocumentStore
from .paths import parse_record_path
from .periods import DailyPeriod, MonthlyPeriod, PeriodParams, ReportKind, ReportPeriod, WeeklyPeriod
from .report_aggregator import ReportAggregator
from .term_calendar import month_bounds, terms_in_month

logger = logging.getLogger(__name__)


def month_periods(aggregator: ReportAggregator, year: int, month: int) -> list[ReportPeriod]:
    """Every period of the aggregator's granularity inside a month."""
    first, last = month_bounds(year, month)
    match aggregator.kind:
        case ReportKind.DAILY:
            return [DailyPeriod(year, month, day) for day in range(first.day, last.day + 1)]
        case ReportKind.WEEKLY:
            return [WeeklyPeriod(year, month, term) for term in range(1, terms_in_month(year, month) + 1)]
        case _:
            return [MonthlyPeriod(year, month)]


class ReportRecalculator:
    """
    Rebuilds a month's daily, weekly and monthly aggregates from the active
    raw records under ``details/YYYY/MM``.

    Alert and dispatched flags survive the rebuild. Existing aggregates with
    no active records left are reset to zero; missing empty ones are not
    created. This repairs counters drifted by partial failures or repeated
    reactivations.
    """

    def __init__(
        self,
        store: DocumentStore,
        daily: ReportAggregator,
        weekly: ReportAggregator,
        monthly: ReportAggregator,
    ):
        self.store = store
        self.aggregators = (daily, weekly, monthly)

    async def recalculate_month(
        self,
        year: int,
        month: int,
        executed_by: str = "recalculation",
        dry_run: bool = False,
    ) -> RecalculationSummary:
        month_bounds(year, month)
        prefix = f"details/{year:04d}/{month:02d}"
        summary = RecalculationSummary(year=year, month=month, dry_run=dry_run)

        try:
            documents = await self.store.list_prefix(prefix)
        except ReportError:
            raise
        except Exception as e:
            raise DataAccessError("Listing raw records failed", {"prefix": prefix}) from e

        grouped: dict[str, dict[ReportPeriod, list[tuple[str, int]]]] = defaultdict(dict)
        for document in documents:
            try:
                day, _ = parse_record_path(document.path)
                usage = CardUsage.model_validate(document.data)
            except (ValidationError, SchemaValidationError) as e:
                logger.warning(f"Skipping malformed record {document.path}: {e}")
                summary.skipped_records += 1
                continue

            if not usage.is_active:
                summary.inactive_records += 1
                continue

            summary.active_records += 1
            summary.total_amount += usage.amount
            params = PeriodParams.from_date(day)
            ref = self.store.get_ref(document.path)
            for aggregator in self.aggregators:
                period = aggregator.period_for(params)
                grouped[aggregator.kind.value].setdefault(period, []).append((ref, usage.amount))

        for aggregator in self.aggregators:
            kind = aggregator.kind.value
            records_by_period = grouped[kind]
            for period in month_periods(aggregator, year, month):
                records = records_by_period.get(period, [])
                created = await self._rebuild(aggregator, period, records, executed_by, dry_run)
                if created is None:
                    continue
                counts = summary.created if created else summary.updated
                counts[kind] = counts.get(kind, 0) + 1

        logger.info(
            f"Recalculated {year:04d}-{month:02d}{' (dry run)' if dry_run else ''}: "
            f"{summary.active_records} active records, created={summary.created} updated={summary.updated}"
        )
        return summary

    async def _rebuild(
        self,
        aggregator: ReportAggregator,
        period: ReportPeriod,
        records: list[tuple[str, int]],
        executed_by: str,
        dry_run: bool,
    ) -> bool | None:
        """Rebuild one period; returns whether it was created, None when skipped."""
        if dry_run:
            exists = await aggregator.get(period) is not None
            if not exists and not records:
                return None
            return not exists

        aggregate, created = await aggregator.rebuild(
            period,
            records,
            updated_by=executed_by,
            create=bool(records),
        )
        if aggregate is None:
            return None
        return created


def recent_months(today: date, days: int) -> list[tuple[int, int]]:
    """Distinct (year, month) pairs covering the ``days`` days before ``today``."""
    months: list[tuple[int, int]] = []
    for offset in range(days, 0, -1):
        day = today - timedelta(days=offset)
        if (day.year, day.month) not in months:
            months.append((day.year, day.month))
    return months
