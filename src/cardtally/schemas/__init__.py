"""Pydantic schemas for aggregates, notifications and configuration."""

from .dispatch import DispatchResult, DispatchStatus, DispatchSummary
from .notifications import ReportNotification
from .recalculation import RecalculationSummary
from .reports import AlertFlags, ReportAggregate, ReportAggregateResponse
from .thresholds import ReportThresholds, ThresholdLevels
from .usage import CardUsage

__all__ = [
    "AlertFlags",
    "CardUsage",
    "DispatchResult",
    "DispatchStatus",
    "DispatchSummary",
    "RecalculationSummary",
    "ReportAggregate",
    "ReportAggregateResponse",
    "ReportNotification",
    "ReportThresholds",
    "ThresholdLevels",
]
