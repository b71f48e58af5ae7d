"""Database connection, session management and the document store binding."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import settings
from .models import Base
from .services.document_store import SqlDocumentStore

# Create async engine
async_engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

# Session factory
async_session_factory = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

document_store = SqlDocumentStore(async_session_factory, merge_attempts=settings.max_update_attempts)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI to get a database session."""
    async with async_session_factory() as session:
        yield session


async def init_db(create_tables: bool = False) -> None:
    """Verify the connection on startup; optionally create tables outside alembic."""
    async with async_engine.begin() as conn:
        if create_tables:
            await conn.run_sync(Base.metadata.create_all)
        else:
            await conn.run_sync(lambda _: None)
