"""Create-or-increment aggregation of card usage into period reports."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import ValidationError as SchemaValidationError

from ..config import settings
from ..errors import (
    DataAccessError,
    NotificationError,
    ReportError,
    ValidationError,
    VersionConflictError,
)
from ..schemas.dispatch import DispatchResult, DispatchStatus
from ..schemas.notifications import ReportNotification
from ..schemas.reports import ReportAggregate
from ..schemas.thresholds import ThresholdLevels
from ..utils.dates import civil_timezone, format_date_range
from .alerts import ThresholdAlertEvaluator
from .document_store import DocumentStore, StoredDocument
from .notifier import Notifier, channel_for
from .periods import PeriodParams, ReportKind, ReportPeriod, period_bounds

logger = logging.getLogger(__name__)

T = TypeVar("T")

Mutation = Callable[[ReportAggregate], ReportAggregate]


def validate_amount(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Amount must be an integer", {"amount": amount})
    return amount


class ReportAggregator:
    """
    Maintains the aggregates of one granularity.

    Every write is a read-modify-write under compare-and-set: the aggregate is
    read with its version, mutated in memory, and written back only if the
    version is unchanged. A lost race re-reads and re-applies the mutation,
    so concurrent increments are never lost.
    """

    def __init__(
        self,
        kind: ReportKind,
        store: DocumentStore,
        notifier: Notifier | None = None,
        thresholds: ThresholdLevels | None = None,
        tz: timezone | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.kind = kind
        self.store = store
        self.notifier = notifier
        self.tz = tz or civil_timezone()
        self.max_attempts = max_attempts or settings.max_update_attempts
        self._clock = clock or (lambda: datetime.now(self.tz))

        self.alerts: ThresholdAlertEvaluator | None = None
        if thresholds is not None and kind is not ReportKind.DAILY:
            self.alerts = ThresholdAlertEvaluator(kind, thresholds, notifier)

    def period_for(self, params: PeriodParams) -> ReportPeriod:
        return self.kind.period_for(params)

    async def get(self, period: ReportPeriod) -> ReportAggregate | None:
        stored = await self._call("get", period.path, self.store.get(period.path))
        if stored is None:
            return None
        return self._load(stored)

    async def process_report(
        self,
        record_ref: str,
        amount: int,
        params: PeriodParams,
    ) -> ReportAggregate:
        """Add one new record to the aggregate, creating it on first use."""
        amount = validate_amount(amount)
        period = self.period_for(params)

        def add_record(current: ReportAggregate) -> ReportAggregate:
            return self._touched(
                current,
                "system",
                total_amount=current.total_amount + amount,
                total_count=current.total_count + 1,
                contributing_record_refs=[*current.contributing_record_refs, record_ref],
            )

        aggregate = await self._read_modify_write(
            period,
            add_record,
            seed=lambda: self._new_aggregate(period, amount, 1, [record_ref], "system"),
            operation="process_report",
        )
        assert aggregate is not None
        return await self._evaluate_alerts(aggregate, period)

    async def update_for_amount_change(
        self,
        record_ref: str,
        params: PeriodParams,
        amount_delta: int,
    ) -> ReportAggregate | None:
        """Apply an edited record's amount delta; no-op when the aggregate is absent."""
        amount_delta = validate_amount(amount_delta)
        period = self.period_for(params)

        aggregate = await self._read_modify_write(
            period,
            lambda current: self._touched(
                current, "api-update", total_amount=current.total_amount + amount_delta
            ),
            operation="update_for_amount_change",
        )
        if aggregate is None:
            logger.warning(f"No {self.kind.value} report at {period.path} for {record_ref}; amount change skipped")
            return None
        return await self._evaluate_alerts(aggregate, period)

    async def update_for_deletion(
        self,
        record_ref: str,
        params: PeriodParams,
        amount_delta: int,
        count_delta: int = -1,
    ) -> ReportAggregate | None:
        """Subtract a deactivated record. Its ref stays in the aggregate."""
        amount_delta = validate_amount(amount_delta)
        count_delta = validate_amount(count_delta)
        period = self.period_for(params)

        def remove_record(current: ReportAggregate) -> ReportAggregate:
            total_count = current.total_count + count_delta
            if total_count < 0:
                logger.warning(
                    f"{self.kind.value} report {period.path} count would drop to {total_count}; clamped to 0"
                )
                total_count = 0
            return self._touched(
                current,
                "api-delete",
                total_amount=current.total_amount + amount_delta,
                total_count=total_count,
            )

        aggregate = await self._read_modify_write(period, remove_record, operation="update_for_deletion")
        if aggregate is None:
            logger.warning(f"No {self.kind.value} report at {period.path} for {record_ref}; deletion skipped")
            return None
        return await self._evaluate_alerts(aggregate, period)

    async def update_for_reactivation(
        self,
        record_ref: str,
        params: PeriodParams,
        amount_to_add: int,
        count_to_add: int = 1,
    ) -> ReportAggregate:
        """Add a reactivated record back, creating the aggregate if it is gone."""
        amount_to_add = validate_amount(amount_to_add)
        count_to_add = validate_amount(count_to_add)
        period = self.period_for(params)

        def restore_record(current: ReportAggregate) -> ReportAggregate:
            refs = current.contributing_record_refs
            if record_ref not in refs:
                refs = [*refs, record_ref]
            return self._touched(
                current,
                "api-reactivate",
                total_amount=current.total_amount + amount_to_add,
                total_count=current.total_count + count_to_add,
                contributing_record_refs=refs,
            )

        aggregate = await self._read_modify_write(
            period,
            restore_record,
            seed=lambda: self._new_aggregate(
                period, amount_to_add, count_to_add, [record_ref], "api-reactivate"
            ),
            operation="update_for_reactivation",
        )
        assert aggregate is not None
        return await self._evaluate_alerts(aggregate, period)

    async def rebuild(
        self,
        period: ReportPeriod,
        records: list[tuple[str, int]],
        updated_by: str = "recalculation",
        create: bool = True,
    ) -> tuple[ReportAggregate | None, bool]:
        """
        Replace totals and refs with the given ``(ref, amount)`` records.

        Alert and dispatched flags are kept and no alert is evaluated.
        Returns the aggregate (None when absent and ``create`` is false) and
        whether it was created.
        """
        total_amount = sum(amount for _, amount in records)
        refs = [ref for ref, _ in records]
        created = False

        def replace(current: ReportAggregate) -> ReportAggregate:
            nonlocal created
            created = False
            return self._touched(
                current,
                updated_by,
                total_amount=total_amount,
                total_count=len(records),
                contributing_record_refs=refs,
            )

        def seed() -> ReportAggregate:
            nonlocal created
            created = True
            return self._new_aggregate(period, total_amount, len(records), refs, updated_by)

        aggregate = await self._read_modify_write(
            period,
            replace,
            seed=seed if create else None,
            operation="rebuild",
        )
        if aggregate is not None:
            logger.info(
                f"Rebuilt {self.kind.value} report {period.path}: "
                f"amount={total_amount} count={len(records)}"
            )
        return aggregate, created

    async def dispatch(self, period: ReportPeriod) -> DispatchResult:
        """Send the period summary once; the flag is set only after delivery."""
        aggregate = await self.get(period)
        if aggregate is None:
            return self._result(period, DispatchStatus.MISSING, "No aggregate for this period")
        if aggregate.dispatched:
            return self._result(period, DispatchStatus.ALREADY_SENT)
        if self.notifier is None:
            return self._result(period, DispatchStatus.NO_CHANNEL, "No notifier configured")

        payload = self.build_summary(aggregate, period)
        try:
            sent = await channel_for(self.notifier, self.kind)(payload)
        except Exception as e:
            raise NotificationError(
                f"Sending {self.kind.value} summary failed",
                {"path": period.path},
            ) from e

        if not sent:
            logger.warning(f"{self.kind.value} summary for {period.path} not delivered")
            return self._result(period, DispatchStatus.SEND_FAILED, "Notifier reported failure")

        await self._read_modify_write(
            period,
            lambda current: self._touched(
                current, f"{self.kind.value}-report-schedule", dispatched=True
            ),
            operation="mark_dispatched",
        )
        logger.info(f"Dispatched {self.kind.value} summary for {period.path}")
        return self._result(period, DispatchStatus.SENT)

    def build_summary(self, aggregate: ReportAggregate, period: ReportPeriod) -> ReportNotification:
        first, last = period.dates()
        span = first.strftime("%Y/%m/%d") if first == last else format_date_range(first, last)
        return ReportNotification(
            title=f"{self.kind.value.capitalize()} report {period.label}",
            period=span,
            total_amount=aggregate.total_amount,
            total_count=aggregate.total_count,
            additional_info=self._summary_info(aggregate),
        )

    def _summary_info(self, aggregate: ReportAggregate) -> str:
        if aggregate.total_count <= 0:
            return "No usage in this period"

        lines = [f"Average per use: {round(aggregate.total_amount / aggregate.total_count):,}"]
        if self.alerts is not None:
            thresholds = self.alerts.thresholds
            exceeded = next(
                (level for level in (3, 2, 1) if aggregate.total_amount > thresholds.amount_for(level)),
                None,
            )
            if exceeded is None:
                lines.append(f"Within budget (first threshold {thresholds.level1:,})")
            else:
                over = aggregate.total_amount - thresholds.amount_for(exceeded)
                lines.append(f"Over level {exceeded} threshold by {over:,}")
        return "\n".join(lines)

    async def _evaluate_alerts(self, aggregate: ReportAggregate, period: ReportPeriod) -> ReportAggregate:
        if self.alerts is None:
            return aggregate

        level = await self.alerts.evaluate(aggregate, period)
        if level is None:
            return aggregate

        flagged = await self._read_modify_write(
            period,
            lambda current: current.model_copy(
                update={"alert_flags": current.alert_flags.with_level(level)}
            ),
            operation="set_alert_flag",
        )
        return flagged or aggregate

    async def _read_modify_write(
        self,
        period: ReportPeriod,
        mutate: Mutation,
        *,
        seed: Callable[[], ReportAggregate] | None = None,
        operation: str,
    ) -> ReportAggregate | None:
        path = period.path
        for attempt in range(1, self.max_attempts + 1):
            stored = await self._call(operation, path, self.store.get(path))
            try:
                if stored is None:
                    if seed is None:
                        return None
                    aggregate = seed()
                    version = await self._call(
                        operation,
                        path,
                        self.store.save(path, aggregate.to_document(), expected_version=0),
                    )
                    logger.info(f"Created {self.kind.value} report {path}")
                else:
                    aggregate = mutate(self._load(stored))
                    version = await self._call(
                        operation,
                        path,
                        self.store.update(path, aggregate.to_document(), expected_version=stored.version),
                    )
            except VersionConflictError:
                logger.warning(f"{operation} on {path} lost a concurrent write, retrying (attempt {attempt})")
                continue
            return aggregate.model_copy(update={"version": version})

        raise DataAccessError(
            "Aggregate kept changing concurrently",
            {"kind": self.kind.value, "operation": operation, "path": path, "attempts": self.max_attempts},
        )

    async def _call(self, operation: str, path: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except ReportError:
            raise
        except Exception as e:
            raise DataAccessError(
                f"Document store failed during {operation}",
                {"kind": self.kind.value, "path": path},
            ) from e

    def _load(self, stored: StoredDocument) -> ReportAggregate:
        try:
            return ReportAggregate.from_document(stored.data, stored.version)
        except SchemaValidationError as e:
            raise DataAccessError(
                "Stored aggregate is malformed",
                {"kind": self.kind.value, "path": stored.path},
            ) from e

    def _new_aggregate(
        self,
        period: ReportPeriod,
        amount: int,
        count: int,
        record_refs: list[str],
        updated_by: str,
    ) -> ReportAggregate:
        start, end = period_bounds(period, self.tz)
        return ReportAggregate(
            total_amount=amount,
            total_count=count,
            contributing_record_refs=record_refs,
            period_start=start,
            period_end=end,
            last_updated=self._clock(),
            last_updated_by=updated_by,
        )

    def _touched(self, aggregate: ReportAggregate, updated_by: str, **changes: Any) -> ReportAggregate:
        return aggregate.model_copy(
            update={**changes, "last_updated": self._clock(), "last_updated_by": updated_by}
        )

    def _result(self, period: ReportPeriod, status: DispatchStatus, message: str = "") -> DispatchResult:
        return DispatchResult(kind=self.kind.value, path=period.path, status=status, message=message)
