"""Report aggregate and dispatch endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_report_services
from ..errors import ReportError, ValidationError
from ..schemas.dispatch import DispatchSummary
from ..schemas.recalculation import RecalculationSummary
from ..schemas.reports import ReportAggregateResponse
from ..services.periods import DailyPeriod, MonthlyPeriod, ReportKind, ReportPeriod, WeeklyPeriod
from ..services.reporting import ReportServices
from ..services.term_calendar import month_bounds, term_bounds

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


async def _get_report(
    services: ReportServices,
    kind: ReportKind,
    period: ReportPeriod,
) -> ReportAggregateResponse:
    try:
        aggregate = await services.aggregator(kind).get(period)
    except ReportError as e:
        logger.error(f"Reading {period.path} failed: {e}")
        raise HTTPException(status_code=503, detail="Report store unavailable") from e

    if aggregate is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return ReportAggregateResponse(path=period.path, version=aggregate.version, report=aggregate)


@router.get("/daily/{year}/{month}/{day}", response_model=ReportAggregateResponse)
async def get_daily_report(
    year: int,
    month: int,
    day: int,
    services: ReportServices = Depends(get_report_services),
) -> ReportAggregateResponse:
    """Get the aggregate of one civil day."""
    try:
        first, last = month_bounds(year, month)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    if not first.day <= day <= last.day:
        raise HTTPException(status_code=422, detail="Day out of range")
    return await _get_report(services, ReportKind.DAILY, DailyPeriod(year, month, day))


@router.get("/weekly/{year}/{month}/{term}", response_model=ReportAggregateResponse)
async def get_weekly_report(
    year: int,
    month: int,
    term: int,
    services: ReportServices = Depends(get_report_services),
) -> ReportAggregateResponse:
    """Get the aggregate of one term (week of month)."""
    try:
        term_bounds(year, month, term)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return await _get_report(services, ReportKind.WEEKLY, WeeklyPeriod(year, month, term))


@router.get("/monthly/{year}/{month}", response_model=ReportAggregateResponse)
async def get_monthly_report(
    year: int,
    month: int,
    services: ReportServices = Depends(get_report_services),
) -> ReportAggregateResponse:
    """Get the aggregate of one month."""
    try:
        month_bounds(year, month)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return await _get_report(services, ReportKind.MONTHLY, MonthlyPeriod(year, month))


@router.post("/dispatch", response_model=DispatchSummary)
async def dispatch_reports(
    services: ReportServices = Depends(get_report_services),
) -> DispatchSummary:
    """Run the scheduled dispatch now. Already-sent periods are skipped."""
    summary = await services.dispatcher.run()
    if not summary.ok:
        logger.warning(f"Manual dispatch for {summary.target_date} had failures")
    return summary


@router.post("/recalculate/{year}/{month}", response_model=RecalculationSummary)
async def recalculate_reports(
    year: int,
    month: int,
    dry_run: bool = False,
    services: ReportServices = Depends(get_report_services),
) -> RecalculationSummary:
    """Rebuild a month's aggregates from its active usage records."""
    try:
        return await services.recalculator.recalculate_month(
            year, month, executed_by="api-recalculate", dry_run=dry_run
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except ReportError as e:
        logger.error(f"Recalculating {year:04d}-{month:02d} failed: {e}")
        raise HTTPException(status_code=503, detail="Report store unavailable") from e
