"""Raw card usage record schema."""

from datetime import datetime

from pydantic import BaseModel, Field


class CardUsage(BaseModel):
    """A single card usage as stored under ``details/...``."""

    amount: int
    occurred_at: datetime
    is_active: bool = True
    card_name: str | None = None
    where_to_use: str | None = None
    memo: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    updated_by: str = Field("system")
