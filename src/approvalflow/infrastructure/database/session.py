"""Database session management."""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from approvalflow.core.config import Settings, get_settings
from approvalflow.models import Base

logger = logging.getLogger(__name__)


def create_async_db_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create asynchronous database engine."""
    settings = settings or get_settings()
    url = settings.async_database_url
    if url.startswith("sqlite"):
        # SQLite pools do not take size/overflow arguments.
        return create_async_engine(url, echo=settings.debug)
    return create_async_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_recycle=1800,
        pool_pre_ping=True,
        echo=settings.debug,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to an engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


async def init_database(engine: AsyncEngine) -> None:
    """Create tables on SQLite.

    Server databases get their schema from the Alembic migrations in
    ``migrations/`` (``alembic upgrade head``); this is a no-op for them.
    """
    if engine.dialect.name != "sqlite":
        logger.info("Schema for %s is managed by migrations", engine.dialect.name)
        return

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")
