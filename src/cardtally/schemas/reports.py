"""Report aggregate schema."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class AlertFlags(BaseModel):
    """One-shot threshold notification flags; never reset once set."""

    level1: bool = False
    level2: bool = False
    level3: bool = False

    def is_set(self, level: int) -> bool:
        return getattr(self, f"level{level}")

    def with_level(self, level: int) -> "AlertFlags":
        return self.model_copy(update={f"level{level}": True})


class ReportAggregate(BaseModel):
    """Running totals for one daily, weekly or monthly period."""

    total_amount: int
    total_count: int
    contributing_record_refs: list[str] = Field(default_factory=list)
    period_start: datetime
    period_end: datetime
    alert_flags: AlertFlags = Field(default_factory=AlertFlags)
    dispatched: bool = False
    last_updated: datetime
    last_updated_by: str

    # Store version of the document this aggregate was read from or written as
    version: int = Field(0, exclude=True)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, data: dict[str, Any], version: int) -> "ReportAggregate":
        return cls.model_validate({**data, "version": version})


class ReportAggregateResponse(BaseModel):
    """API view of an aggregate."""

    path: str
    version: int
    report: ReportAggregate
