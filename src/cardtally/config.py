"""Application configuration using Pydantic settings."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database - SQLAlchemy (asyncpg)
    database_url: str = Field(
        "postgresql+asyncpg://localhost/cardtally",
        description="SQLAlchemy connection string (postgresql+asyncpg://...)",
    )

    # Database - Procrastinate (psycopg)
    procrastinate_database_url: str = Field(
        "postgresql://localhost/cardtally",
        description="Procrastinate connection string (postgresql://...)",
    )

    # Calendar
    civil_utc_offset_hours: int = Field(
        9,
        ge=-12,
        le=14,
        description="Fixed UTC offset of the civil timezone all periods are computed in",
    )

    # Schedule (cron is evaluated in UTC; 15:05 UTC is 00:05 at UTC+9)
    dispatch_cron: str = Field(
        "5 15 * * *",
        description="Cron expression for the daily scheduled report dispatch",
    )

    recalculation_cron: str = Field(
        "30 15 * * *",
        description="Cron expression for the daily recalculation of recent reports",
    )
    recalculation_days: int = Field(
        7,
        ge=1,
        description="Days before today whose months the scheduled recalculation rebuilds",
    )

    # Alert thresholds
    thresholds_file: str | None = Field(
        None,
        description="YAML file with weekly/monthly alert thresholds (defaults when unset)",
    )

    # Discord webhooks
    report_daily_webhook_url: str | None = Field(None, description="Daily summary webhook")
    report_weekly_webhook_url: str | None = Field(None, description="Weekly summary webhook")
    report_monthly_webhook_url: str | None = Field(None, description="Monthly summary webhook")
    alert_weekly_webhook_url: str | None = Field(None, description="Weekly alert webhook")
    alert_monthly_webhook_url: str | None = Field(None, description="Monthly alert webhook")
    notification_timeout_seconds: float = Field(
        10.0,
        description="Timeout for a single webhook delivery",
    )

    # Aggregates
    max_update_attempts: int = Field(
        5,
        ge=1,
        description="Compare-and-set attempts before an aggregate update gives up",
    )

    # Server
    host: str = Field("0.0.0.0")
    port: int = Field(8000)
    log_level: str = Field("INFO")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def notifications_configured(self) -> bool:
        """True when at least one webhook is set."""
        return any(
            (
                self.report_daily_webhook_url,
                self.report_weekly_webhook_url,
                self.report_monthly_webhook_url,
                self.alert_weekly_webhook_url,
                self.alert_monthly_webhook_url,
            )
        )


settings = Settings()
