"""Wiring of the report engine components."""

from dataclasses import dataclass
from datetime import timezone

from ..schemas.thresholds import ReportThresholds
from ..utils.dates import civil_timezone
from .card_usage import CardUsageService
from .dispatcher import ScheduledDispatcher
from .document_store import DocumentStore
from .notifier import Notifier
from .periods import ReportKind
from .recalculation import ReportRecalculator
from .report_aggregator import ReportAggregator


@dataclass
class ReportServices:
    store: DocumentStore
    daily: ReportAggregator
    weekly: ReportAggregator
    monthly: ReportAggregator
    dispatcher: ScheduledDispatcher
    usage: CardUsageService
    recalculator: ReportRecalculator

    def aggregator(self, kind: ReportKind) -> ReportAggregator:
        return {
            ReportKind.DAILY: self.daily,
            ReportKind.WEEKLY: self.weekly,
            ReportKind.MONTHLY: self.monthly,
        }[kind]


def build_report_services(
    store: DocumentStore,
    notifier: Notifier | None = None,
    thresholds: ReportThresholds | None = None,
    tz: timezone | None = None,
    max_attempts: int | None = None,
) -> ReportServices:
    """Build the report components sharing one store and notifier."""
    thresholds = thresholds or ReportThresholds.get_default()
    tz = tz or civil_timezone()

    daily = ReportAggregator(ReportKind.DAILY, store, notifier, tz=tz, max_attempts=max_attempts)
    weekly = ReportAggregator(
        ReportKind.WEEKLY, store, notifier, thresholds.weekly, tz=tz, max_attempts=max_attempts
    )
    monthly = ReportAggregator(
        ReportKind.MONTHLY, store, notifier, thresholds.monthly, tz=tz, max_attempts=max_attempts
    )
    return ReportServices(
        store=store,
        daily=daily,
        weekly=weekly,
        monthly=monthly,
        dispatcher=ScheduledDispatcher(daily, weekly, monthly, tz=tz),
        usage=CardUsageService(store, daily, weekly, monthly, tz=tz, max_attempts=max_attempts),
        recalculator=ReportRecalculator(store, daily, weekly, monthly),
    )
