"""Pytest configuration and fixtures."""

import asyncio
import copy
from datetime import timedelta, timezone
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cardtally.errors import DocumentNotFoundError, VersionConflictError
from cardtally.models import Base
from cardtally.schemas.notifications import ReportNotification
from cardtally.schemas.thresholds import ReportThresholds
from cardtally.services.config_loader import clear_thresholds_cache
from cardtally.services.document_store import SqlDocumentStore, StoredDocument
from cardtally.services.reporting import build_report_services

JST = timezone(timedelta(hours=9))


class MemoryDocumentStore:
    """
    In-memory DocumentStore with the same compare-and-set rules as the SQL one.

    Every call yields to the event loop before touching state, so coroutines
    run with asyncio.gather interleave their read-modify-write cycles.
    ``failures`` maps a path prefix to an exception raised by any call on it.
    """

    def __init__(self):
        self.documents: dict[str, StoredDocument] = {}
        self.failures: dict[str, Exception] = {}
        self.writes = 0

    async def get(self, path: str) -> StoredDocument | None:
        path = await self._enter(path)
        document = self.documents.get(path)
        if document is None:
            return None
        return StoredDocument(document.path, copy.deepcopy(document.data), document.version)

    async def save(self, path: str, value: dict[str, Any], expected_version: int | None = None) -> int:
        path = await self._enter(path)
        current = self.documents.get(path)
        current_version = current.version if current else 0
        if expected_version is not None and expected_version != current_version:
            raise VersionConflictError(path, expected_version, current_version)
        return self._write(path, copy.deepcopy(value), current_version + 1)

    async def update(self, path: str, partial: dict[str, Any], expected_version: int | None = None) -> int:
        path = await self._enter(path)
        current = self.documents.get(path)
        if current is None:
            raise DocumentNotFoundError("No document to update", {"path": path})
        if expected_version is not None and expected_version != current.version:
            raise VersionConflictError(path, expected_version, current.version)
        return self._write(path, {**current.data, **copy.deepcopy(partial)}, current.version + 1)

    async def list_prefix(self, prefix: str) -> list[StoredDocument]:
        prefix = await self._enter(prefix) + "/"
        return [
            StoredDocument(document.path, copy.deepcopy(document.data), document.version)
            for path, document in sorted(self.documents.items())
            if path.startswith(prefix)
        ]

    def get_ref(self, path: str) -> str:
        return path.strip("/")

    def data(self, path: str) -> dict[str, Any] | None:
        document = self.documents.get(path)
        return document.data if document else None

    async def _enter(self, path: str) -> str:
        await asyncio.sleep(0)
        path = path.strip("/")
        for prefix, error in self.failures.items():
            if path.startswith(prefix):
                raise error
        return path

    def _write(self, path: str, data: dict[str, Any], version: int) -> int:
        self.documents[path] = StoredDocument(path, data, version)
        self.writes += 1
        return version


class RecordingNotifier:
    """
    Notifier double recording every send attempt.

    ``outcomes`` maps a channel name (daily, weekly, monthly) to the value
    returned, or to an exception raised, for sends on that channel.
    """

    def __init__(self):
        self.sent: list[tuple[str, ReportNotification]] = []
        self.outcomes: dict[str, bool | Exception] = {}

    async def send_daily(self, payload: ReportNotification) -> bool:
        return self._send("daily", payload)

    async def send_weekly(self, payload: ReportNotification) -> bool:
        return self._send("weekly", payload)

    async def send_monthly(self, payload: ReportNotification) -> bool:
        return self._send("monthly", payload)

    def alerts(self, channel: str | None = None) -> list[ReportNotification]:
        return [p for c, p in self.sent if p.is_alert and channel in (None, c)]

    def summaries(self, channel: str | None = None) -> list[ReportNotification]:
        return [p for c, p in self.sent if not p.is_alert and channel in (None, c)]

    def _send(self, channel: str, payload: ReportNotification) -> bool:
        outcome = self.outcomes.get(channel, True)
        if isinstance(outcome, Exception):
            raise outcome
        self.sent.append((channel, payload))
        return outcome


@pytest.fixture(autouse=True)
def _reset_thresholds_cache():
    clear_thresholds_cache()
    yield
    clear_thresholds_cache()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def services(store, notifier):
    """Report services on the in-memory store with default thresholds."""
    return build_report_services(
        store,
        notifier,
        ReportThresholds.get_default(),
        tz=JST,
        max_attempts=25,
    )


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    # One shared connection so every session sees the same in-memory database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine):
    """Create a test session factory."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def sql_store(db_session_factory):
    return SqlDocumentStore(db_session_factory)
