"""Notification payload schemas."""

from pydantic import BaseModel, Field


class ReportNotification(BaseModel):
    """A threshold alert (alert_level > 0) or a scheduled period summary."""

    title: str
    period: str
    total_amount: int
    total_count: int
    alert_level: int = Field(0, ge=0, le=3)
    additional_info: str | None = None

    @property
    def is_alert(self) -> bool:
        return self.alert_level > 0
