"""Construction of the report engine for request handlers and tasks."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from .config import settings
from .database import document_store
from .services.config_loader import load_report_thresholds
from .services.notifier import DiscordNotifier
from .services.reporting import ReportServices, build_report_services
from .utils.dates import civil_timezone


@asynccontextmanager
async def open_report_services() -> AsyncIterator[ReportServices]:
    """Report services bound to the SQL store, with Discord when any webhook is set."""
    thresholds = load_report_thresholds(settings.thresholds_file)
    tz = civil_timezone()

    if not settings.notifications_configured:
        yield build_report_services(document_store, None, thresholds, tz, settings.max_update_attempts)
        return

    async with DiscordNotifier.from_settings(settings) as notifier:
        yield build_report_services(document_store, notifier, thresholds, tz, settings.max_update_attempts)


async def get_report_services() -> AsyncGenerator[ReportServices, None]:
    """Dependency for FastAPI to get the report services."""
    async with open_report_services() as services:
        yield services
