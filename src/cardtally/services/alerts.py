"""Threshold alert evaluation for weekly and monthly aggregates."""

import logging

from ..schemas.notifications import ReportNotification
from ..schemas.reports import ReportAggregate
from ..schemas.thresholds import ThresholdLevels
from ..utils.dates import format_date_range
from .notifier import Notifier, channel_for
from .periods import ReportKind, ReportPeriod

logger = logging.getLogger(__name__)

ALERT_MESSAGES = {
    ReportKind.WEEKLY: {
        1: "This term's spending passed {amount:,}. Keep an eye on the pace.",
        2: "This term's spending passed {amount:,}. Time to review expenses.",
        3: "This term's spending passed {amount:,}. Budget far exceeded!",
    },
    ReportKind.MONTHLY: {
        1: "This month's spending passed {amount:,}. Revisit the budget.",
        2: "This month's spending passed {amount:,}. Cut back where possible.",
        3: "This month's spending passed {amount:,}. Urgent budget review needed!",
    },
}


class ThresholdAlertEvaluator:
    """
    Fires at most one threshold alert per evaluation.

    Levels are checked from 3 down to 1; the first level whose threshold is
    reached and whose flag is still unset is the one that fires. The caller
    persists the flag once the alert has been delivered.
    """

    def __init__(
        self,
        kind: ReportKind,
        thresholds: ThresholdLevels,
        notifier: Notifier | None = None,
    ):
        if kind not in ALERT_MESSAGES:
            raise ValueError(f"No threshold alerts for {kind.value} aggregates")
        self.kind = kind
        self.thresholds = thresholds
        self.notifier = notifier

    def pending_level(self, aggregate: ReportAggregate) -> int | None:
        for level in (3, 2, 1):
            if aggregate.alert_flags.is_set(level):
                continue
            if aggregate.total_amount >= self.thresholds.amount_for(level):
                return level
        return None

    def build_alert(
        self,
        aggregate: ReportAggregate,
        period: ReportPeriod,
        level: int,
    ) -> ReportNotification:
        first, last = period.dates()
        threshold = self.thresholds.amount_for(level)
        return ReportNotification(
            title=f"{self.kind.value.capitalize()} alert {period.label} (level {level})",
            period=format_date_range(first, last),
            total_amount=aggregate.total_amount,
            total_count=aggregate.total_count,
            alert_level=level,
            additional_info=ALERT_MESSAGES[self.kind][level].format(amount=threshold),
        )

    async def evaluate(self, aggregate: ReportAggregate, period: ReportPeriod) -> int | None:
        """Send the pending alert, if any. Returns the level once delivered."""
        if self.notifier is None:
            return None

        level = self.pending_level(aggregate)
        if level is None:
            return None

        payload = self.build_alert(aggregate, period, level)
        try:
            sent = await channel_for(self.notifier, self.kind)(payload)
        except Exception:
            logger.exception(f"Level {level} alert for {period.path} raised; flag left unset")
            return None

        if not sent:
            logger.warning(f"Level {level} alert for {period.path} was not delivered; flag left unset")
            return None

        logger.info(f"Sent level {level} {self.kind.value} alert for {period.path}")
        return level
