"""Report recalculation result schema."""

from pydantic import BaseModel, Field


class RecalculationSummary(BaseModel):
    """Outcome of rebuilding one month's aggregates from its raw records."""

    year: int
    month: int
    dry_run: bool = False
    active_records: int = 0
    inactive_records: int = 0
    skipped_records: int = 0
    total_amount: int = 0

    # Aggregate counts keyed by kind (daily, weekly, monthly)
    created: dict[str, int] = Field(default_factory=dict)
    updated: dict[str, int] = Field(default_factory=dict)
