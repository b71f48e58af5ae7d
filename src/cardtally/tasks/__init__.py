"""Procrastinate task definitions."""

from .report_tasks import (
    change_card_usage_amount,
    deactivate_card_usage,
    dispatch_scheduled_reports,
    reactivate_card_usage,
    recalculate_month_reports,
    recalculate_recent_reports,
    record_card_usage,
)
from .worker import app as procrastinate_app

__all__ = [
    "change_card_usage_amount",
    "deactivate_card_usage",
    "dispatch_scheduled_reports",
    "procrastinate_app",
    "reactivate_card_usage",
    "recalculate_month_reports",
    "recalculate_recent_reports",
    "record_card_usage",
]
