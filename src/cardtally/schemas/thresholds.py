"""Schema for alert threshold configuration files."""

from pydantic import BaseModel, Field, model_validator


class ThresholdLevels(BaseModel):
    """Three ascending amount thresholds (minor currency units)."""

    level1: int = Field(gt=0)
    level2: int = Field(gt=0)
    level3: int = Field(gt=0)

    @model_validator(mode="after")
    def check_ascending(self) -> "ThresholdLevels":
        if not self.level1 < self.level2 < self.level3:
            raise ValueError("thresholds must satisfy level1 < level2 < level3")
        return self

    def amount_for(self, level: int) -> int:
        return getattr(self, f"level{level}")


class ReportThresholds(BaseModel):
    """Schema for the thresholds YAML file."""

    weekly: ThresholdLevels = Field(
        default_factory=lambda: ThresholdLevels(level1=1000, level2=5000, level3=10000)
    )
    monthly: ThresholdLevels = Field(
        default_factory=lambda: ThresholdLevels(level1=5000, level2=10000, level3=15000)
    )

    @classmethod
    def get_default(cls) -> "ReportThresholds":
        """Return default thresholds."""
        return cls()
