"""Raw card usage records and their propagation into report aggregates."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from ..config import settings
from ..errors import DataAccessError, DocumentNotFoundError, ReportError, VersionConflictError
from ..schemas.usage import CardUsage
from ..utils.dates import civil_timezone
from .document_store import DocumentStore
from .paths import parse_record_path, record_path
from .periods import PeriodParams
from .report_aggregator import ReportAggregator, validate_amount

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Returns the fields to change on a record, or None when there is nothing to do
RecordChange = Callable[[CardUsage], dict[str, Any] | None]


class CardUsageService:
    """
    Writes usage records and keeps daily, weekly and monthly aggregates in step.

    Record edits are compare-and-set writes: the aggregate deltas are derived
    from the record version that was actually replaced, so overlapping edits
    of one record never apply the same transition twice.
    """

    def __init__(
        self,
        store: DocumentStore,
        daily: ReportAggregator,
        weekly: ReportAggregator,
        monthly: ReportAggregator,
        tz: timezone | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.aggregators = (daily, weekly, monthly)
        self.tz = tz or civil_timezone()
        self.max_attempts = max_attempts or settings.max_update_attempts
        self._clock = clock or (lambda: datetime.now(self.tz))

    async def record_usage(
        self,
        amount: int,
        occurred_at: datetime,
        card_name: str | None = None,
        where_to_use: str | None = None,
        memo: str | None = None,
        created_at_ms: int | None = None,
    ) -> tuple[str, CardUsage]:
        """Store a new usage record and add it to every aggregate of its date."""
        amount = validate_amount(amount)
        if occurred_at.tzinfo is None:
            occurred_at = occurred_at.replace(tzinfo=self.tz)
        occurred_at = occurred_at.astimezone(self.tz)

        day = occurred_at.date()
        path = record_path(day, created_at_ms)
        usage = CardUsage(
            amount=amount,
            occurred_at=occurred_at,
            card_name=card_name,
            where_to_use=where_to_use,
            memo=memo,
            created_at=self._clock(),
        )
        # expected_version=0 turns a same-millisecond path collision into an error
        await self._call("record_usage", path, self.store.save(path, usage.model_dump(mode="json"), expected_version=0))
        logger.info(f"Recorded usage {path} amount={amount}")

        ref = self.store.get_ref(path)
        params = PeriodParams.from_date(day)
        await self._apply(
            path,
            "record_usage",
            lambda aggregator: aggregator.process_report(ref, amount, params),
        )
        return path, usage

    async def change_amount(self, path: str, new_amount: int, updated_by: str = "api-update") -> CardUsage:
        """Edit a record's amount and push the difference to its aggregates."""
        new_amount = validate_amount(new_amount)
        params, before, after = await self._transition(
            path,
            "change_amount",
            lambda usage: None if usage.amount == new_amount else {"amount": new_amount},
            updated_by,
        )
        if after is None:
            return before
        if not after.is_active:
            logger.info(f"Usage {path} is inactive; aggregates left unchanged")
            return after

        delta = new_amount - before.amount
        ref = self.store.get_ref(path)
        await self._apply(
            path,
            "change_amount",
            lambda aggregator: aggregator.update_for_amount_change(ref, params, delta),
        )
        return after

    async def deactivate(self, path: str, updated_by: str = "api-delete") -> CardUsage:
        """Soft-delete a record and subtract it from its aggregates."""
        params, before, after = await self._transition(
            path,
            "deactivate",
            lambda usage: {"is_active": False} if usage.is_active else None,
            updated_by,
        )
        if after is None:
            logger.info(f"Usage {path} already inactive")
            return before

        ref = self.store.get_ref(path)
        await self._apply(
            path,
            "deactivate",
            lambda aggregator: aggregator.update_for_deletion(ref, params, -after.amount, -1),
        )
        return after

    async def reactivate(self, path: str, updated_by: str = "api-reactivate") -> CardUsage:
        """Restore a soft-deleted record and add it back to its aggregates."""
        params, before, after = await self._transition(
            path,
            "reactivate",
            lambda usage: None if usage.is_active else {"is_active": True},
            updated_by,
        )
        if after is None:
            logger.info(f"Usage {path} already active")
            return before

        ref = self.store.get_ref(path)
        await self._apply(
            path,
            "reactivate",
            lambda aggregator: aggregator.update_for_reactivation(ref, params, after.amount, 1),
        )
        return after

    async def _transition(
        self,
        path: str,
        operation: str,
        change: RecordChange,
        updated_by: str,
    ) -> tuple[PeriodParams, CardUsage, CardUsage | None]:
        """
        Compare-and-set a record change.

        Returns the record as it was before the write and as written, or
        ``None`` for the latter when ``change`` found nothing to do. A lost
        race re-reads the record and re-evaluates ``change``.
        """
        day, _ = parse_record_path(path)
        params = PeriodParams.from_date(day)

        for attempt in range(1, self.max_attempts + 1):
            stored = await self._call(operation, path, self.store.get(path))
            if stored is None:
                raise DocumentNotFoundError("Card usage not found", {"path": path})
            usage = CardUsage.model_validate(stored.data)

            changes = change(usage)
            if changes is None:
                return params, usage, None

            updated = usage.model_copy(
                update={**changes, "updated_at": self._clock(), "updated_by": updated_by}
            )
            partial = updated.model_dump(mode="json", include={*changes, "updated_at", "updated_by"})
            try:
                await self._call(
                    operation,
                    path,
                    self.store.update(path, partial, expected_version=stored.version),
                )
            except VersionConflictError:
                logger.warning(f"{operation} on {path} lost a concurrent write, retrying (attempt {attempt})")
                continue
            return params, usage, updated

        raise DataAccessError(
            "Card usage kept changing concurrently",
            {"operation": operation, "path": path, "attempts": self.max_attempts},
        )

    async def _apply(
        self,
        path: str,
        operation: str,
        step: Callable[[ReportAggregator], Awaitable[object]],
    ) -> None:
        applied: list[str] = []
        try:
            for aggregator in self.aggregators:
                await step(aggregator)
                applied.append(aggregator.kind.value)
        except Exception:
            logger.error(
                f"{operation} for {path} updated {applied or 'no'} aggregates before failing; "
                f"recalculate the month to repair"
            )
            raise

    async def _call(self, operation: str, path: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except ReportError:
            raise
        except Exception as e:
            raise DataAccessError(f"Document store failed during {operation}", {"path": path}) from e
