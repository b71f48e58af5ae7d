"""Path-addressed JSON document store with compare-and-set writes."""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..errors import DocumentNotFoundError, ValidationError, VersionConflictError
from ..models import Document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredDocument:
    """A document as read from the store."""

    path: str
    data: dict[str, Any]
    version: int


class DocumentStore(Protocol):
    """
    Storage primitives consumed by the report engine.

    ``expected_version`` turns a write into a compare-and-set: ``0`` means
    "create only if absent", ``n`` means "write only if the stored version is
    still ``n``". A lost race raises VersionConflictError.
    """

    async def get(self, path: str) -> StoredDocument | None: ...

    async def save(
        self,
        path: str,
        value: dict[str, Any],
        expected_version: int | None = None,
    ) -> int: ...

    async def update(
        self,
        path: str,
        partial: dict[str, Any],
        expected_version: int | None = None,
    ) -> int: ...

    async def list_prefix(self, prefix: str) -> list[StoredDocument]: ...

    def get_ref(self, path: str) -> str: ...


def normalize_path(path: str) -> str:
    """Strip surrounding slashes and reject empty segments."""
    normalized = path.strip("/")
    if not normalized or "//" in normalized:
        raise ValidationError("Invalid document path", {"path": path})
    return normalized


class SqlDocumentStore:
    """DocumentStore on top of the ``documents`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        merge_attempts: int = 5,
    ):
        self.session_factory = session_factory
        self.merge_attempts = merge_attempts

    async def get(self, path: str) -> StoredDocument | None:
        path = normalize_path(path)
        async with self.session_factory() as session:
            document = await session.get(Document, path)
            if document is None:
                return None
            return StoredDocument(path=document.path, data=dict(document.data), version=document.version)

    async def save(
        self,
        path: str,
        value: dict[str, Any],
        expected_version: int | None = None,
    ) -> int:
        path = normalize_path(path)
        if expected_version == 0:
            return await self._insert(path, value)
        if expected_version is not None:
            return await self._compare_and_set(path, value, expected_version)

        async with self.session_factory() as session, session.begin():
            document = await session.get(Document, path, with_for_update=True)
            if document is None:
                session.add(Document(path=path, data=value, version=1))
                return 1
            document.data = value
            document.version += 1
            return document.version

    async def update(
        self,
        path: str,
        partial: dict[str, Any],
        expected_version: int | None = None,
    ) -> int:
        path = normalize_path(path)
        attempts = 1 if expected_version is not None else self.merge_attempts
        attempt = 0
        while True:
            attempt += 1
            current = await self.get(path)
            if current is None:
                raise DocumentNotFoundError("No document to update", {"path": path})
            if expected_version is not None and current.version != expected_version:
                raise VersionConflictError(path, expected_version, current.version)
            try:
                return await self._compare_and_set(path, {**current.data, **partial}, current.version)
            except VersionConflictError:
                if attempt >= attempts:
                    raise
                logger.debug(f"Merge on {path} raced a concurrent write (attempt {attempt})")

    async def list_prefix(self, prefix: str) -> list[StoredDocument]:
        """Documents strictly below ``prefix``, ordered by path."""
        prefix = normalize_path(prefix) + "/"
        async with self.session_factory() as session:
            result = await session.execute(
                select(Document)
                .where(Document.path.startswith(prefix, autoescape=True))
                .order_by(Document.path)
            )
            return [
                StoredDocument(path=document.path, data=dict(document.data), version=document.version)
                for document in result.scalars()
            ]

    def get_ref(self, path: str) -> str:
        return normalize_path(path)

    async def _insert(self, path: str, value: dict[str, Any]) -> int:
        async with self.session_factory() as session:
            session.add(Document(path=path, data=value, version=1))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise VersionConflictError(path, 0) from e
        return 1

    async def _compare_and_set(self, path: str, value: dict[str, Any], expected_version: int) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                update(Document)
                .where(Document.path == path, Document.version == expected_version)
                .values(data=value, version=Document.version + 1, updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            updated = result.rowcount
            await session.commit()
        if updated != 1:
            raise VersionConflictError(path, expected_version)
        return expected_version + 1
