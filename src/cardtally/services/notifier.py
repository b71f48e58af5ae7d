"""Notification channel: Discord webhooks for alerts and period summaries."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from ..config import Settings, settings
from ..schemas.notifications import ReportNotification
from .periods import ReportKind

logger = logging.getLogger(__name__)

# Embed colors by alert level (0 = scheduled summary)
EMBED_COLORS = {
    0: 0x3498DB,
    1: 0xF1C40F,
    2: 0xE67E22,
    3: 0xE74C3C,
}


class Notifier(Protocol):
    """Sends report notifications; returns True once delivered."""

    async def send_daily(self, payload: ReportNotification) -> bool: ...

    async def send_weekly(self, payload: ReportNotification) -> bool: ...

    async def send_monthly(self, payload: ReportNotification) -> bool: ...


def channel_for(
    notifier: Notifier,
    kind: ReportKind,
) -> Callable[[ReportNotification], Awaitable[bool]]:
    """Pick the send method matching an aggregate granularity."""
    return {
        ReportKind.DAILY: notifier.send_daily,
        ReportKind.WEEKLY: notifier.send_weekly,
        ReportKind.MONTHLY: notifier.send_monthly,
    }[kind]


def build_embed(payload: ReportNotification) -> dict[str, Any]:
    """Render a notification as a Discord embed."""
    embed: dict[str, Any] = {
        "title": payload.title,
        "color": EMBED_COLORS.get(payload.alert_level, EMBED_COLORS[0]),
        "fields": [
            {"name": "Period", "value": payload.period, "inline": False},
            {"name": "Total amount", "value": f"{payload.total_amount:,}", "inline": True},
            {"name": "Count", "value": str(payload.total_count), "inline": True},
        ],
    }
    if payload.alert_level:
        embed["fields"].append(
            {"name": "Alert level", "value": str(payload.alert_level), "inline": True}
        )
    if payload.additional_info:
        embed["description"] = payload.additional_info
    return embed


class DiscordNotifier:
    """Async Discord webhook client, one webhook per notification type."""

    def __init__(
        self,
        report_daily_url: str | None = None,
        report_weekly_url: str | None = None,
        report_monthly_url: str | None = None,
        alert_weekly_url: str | None = None,
        alert_monthly_url: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.report_daily_url = report_daily_url
        self.report_weekly_url = report_weekly_url
        self.report_monthly_url = report_monthly_url
        self.alert_weekly_url = alert_weekly_url
        self.alert_monthly_url = alert_monthly_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "DiscordNotifier":
        return cls(
            report_daily_url=config.report_daily_webhook_url,
            report_weekly_url=config.report_weekly_webhook_url,
            report_monthly_url=config.report_monthly_webhook_url,
            alert_weekly_url=config.alert_weekly_webhook_url,
            alert_monthly_url=config.alert_monthly_webhook_url,
            timeout=config.notification_timeout_seconds,
        )

    async def __aenter__(self) -> "DiscordNotifier":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def send_daily(self, payload: ReportNotification) -> bool:
        return await self._send(self.report_daily_url, payload, "daily report")

    async def send_weekly(self, payload: ReportNotification) -> bool:
        if payload.is_alert:
            return await self._send(self.alert_weekly_url, payload, "weekly alert")
        return await self._send(self.report_weekly_url, payload, "weekly report")

    async def send_monthly(self, payload: ReportNotification) -> bool:
        if payload.is_alert:
            return await self._send(self.alert_monthly_url, payload, "monthly alert")
        return await self._send(self.report_monthly_url, payload, "monthly report")

    async def _send(self, url: str | None, payload: ReportNotification, label: str) -> bool:
        if not url:
            logger.warning(f"No webhook configured for {label}; notification skipped")
            return False

        assert self._client is not None
        try:
            response = await self._client.post(url, json={"embeds": [build_embed(payload)]})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to deliver {label} notification '{payload.title}': {e}")
            return False

        logger.info(f"Delivered {label} notification '{payload.title}'")
        return True
