"""Business logic services."""

from .card_usage import CardUsageService
from .config_loader import load_report_thresholds
from .dispatcher import ScheduledDispatcher
from .document_store import DocumentStore, SqlDocumentStore, StoredDocument
from .notifier import DiscordNotifier, Notifier
from .periods import DailyPeriod, MonthlyPeriod, PeriodParams, ReportKind, WeeklyPeriod
from .recalculation import ReportRecalculator
from .report_aggregator import ReportAggregator
from .reporting import ReportServices, build_report_services

__all__ = [
    "CardUsageService",
    "DailyPeriod",
    "DiscordNotifier",
    "DocumentStore",
    "MonthlyPeriod",
    "Notifier",
    "PeriodParams",
    "ReportAggregator",
    "ReportKind",
    "ReportRecalculator",
    "ReportServices",
    "ScheduledDispatcher",
    "SqlDocumentStore",
    "StoredDocument",
    "WeeklyPeriod",
    "build_report_services",
    "load_report_thresholds",
]
