"""Scheduled dispatch result schemas."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, computed_field


class DispatchStatus(str, Enum):
    SENT = "sent"
    ALREADY_SENT = "already_sent"
    MISSING = "missing"
    SEND_FAILED = "send_failed"
    NO_CHANNEL = "no_channel"
    ERROR = "error"


class DispatchResult(BaseModel):
    """Outcome of dispatching one period's summary."""

    kind: str
    path: str
    status: DispatchStatus
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status in (DispatchStatus.SENT, DispatchStatus.ALREADY_SENT)

    @property
    def failed(self) -> bool:
        return self.status in (DispatchStatus.SEND_FAILED, DispatchStatus.ERROR)


class DispatchSummary(BaseModel):
    """Combined result of one scheduled dispatcher run."""

    target_date: date
    results: list[DispatchResult] = Field(default_factory=list)

    @computed_field
    @property
    def ok(self) -> bool:
        return not any(r.failed for r in self.results)

    def result_for(self, kind: str) -> DispatchResult | None:
        return next((r for r in self.results if r.kind == kind), None)
