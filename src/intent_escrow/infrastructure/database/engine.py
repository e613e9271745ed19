"""Async database engine and session management.

Provides:
    - _get_engine / _get_session_factory: lazily created singletons.
    - session_scope: one transaction per escrow call, committed on success and
      rolled back on any exception, so a rejected call leaves no writes behind.
    - init_db / close_db: lifecycle hooks for the host process.

Usage:
    await init_db()
    async with session_scope() as session:
        svc = IntentEscrowService.from_session(session)
        await svc.approve_work("alice.near", "i1")
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from intent_escrow.config import get_settings
from intent_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine

logger = get_logger(__name__)

# Module-level singletons (initialized in init_db)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_engine(database_url: str | None = None) -> AsyncEngine:
    """Get or create the async engine (lazy singleton)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        url = database_url or settings.database_url
        if url.startswith("sqlite"):
            # SQLite picks its own pool; QueuePool sizing does not apply
            _engine = create_async_engine(url, echo=settings.db_echo_sql)
        else:
            _engine = create_async_engine(
                url,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_pre_ping=True,
                echo=settings.db_echo_sql,
            )
        logger.info("database.engine_created", dialect=_engine.dialect.name)
    return _engine


def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy singleton)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=_get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session whose writes are committed or discarded as one unit."""
    factory = _get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(database_url: str | None = None) -> None:
    """Initialize the database engine and create tables if they don't exist.

    Tables are created in development mode or whenever an explicit URL is
    passed (used for throwaway SQLite databases).
    """
    from intent_escrow.infrastructure.database.orm_models import Base

    engine = _get_engine(database_url)
    settings = get_settings()

    if settings.is_development or database_url is not None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("database.tables_created")
    else:
        logger.info("database.skipping_create_all", reason="not in development mode")


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("database.engine_disposed")
        _engine = None
        _session_factory = None
