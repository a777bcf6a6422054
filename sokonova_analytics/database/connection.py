"""
Engine and session lifecycle for the marketplace store.

The seller analytics service only reads, so request sessions are rolled
back on exit rather than committed.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import time

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from sokonova_analytics.config import get_settings

logger = structlog.get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


async def init_database(url: Optional[str] = None) -> AsyncEngine:
    """
    Create the engine and session factory, then check the store answers.

    ``url`` overrides the configured async URL. Calling twice returns the
    existing engine.
    """
    global _engine, _session_factory

    if _engine is not None:
        logger.warning("Marketplace store already initialized")
        return _engine

    db_settings = get_settings().database
    # asyncpg keeps its own connections; no SQLAlchemy pool on top
    _engine = create_async_engine(
        url or db_settings.async_url,
        echo=db_settings.echo,
        poolclass=NullPool,
    )
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Marketplace store unreachable", error=str(e))
        raise

    logger.info("Marketplace store connected", host=db_settings.host, database=db_settings.db)
    return _engine


async def close_database() -> None:
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Marketplace store connections closed")


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Session scoped to the block; anything left uncommitted is rolled back."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    session = _session_factory()
    try:
        yield session
    except SQLAlchemyError as e:
        logger.error("Marketplace query failed", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        await session.rollback()
        await session.close()


async def get_db_dependency() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session for FastAPI ``Depends``."""
    async with get_db() as session:
        yield session


async def check_database_health() -> dict:
    """Round-trip ``SELECT 1`` and report status with latency."""
    started = time.perf_counter()
    try:
        async with get_db() as db:
            await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        return {"status": "unhealthy", "error": str(e)}

    return {
        "status": "healthy",
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
    }
