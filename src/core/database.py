"""
Async database engine and session factory.

One engine per process. SQLite runs without a connection pool and gets its
parent directory created on first use; other backends ping connections
before handing them out. Tables are created from the ORM metadata.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from ..models.base import Base

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_database_url() -> str:
    """DATABASE_URL from settings."""
    from .config import get_settings

    return get_settings().database_url


def _ensure_sqlite_directory(database_url: str) -> None:
    database = make_url(database_url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


async def init_database(database_url: Optional[str] = None) -> None:
    """Create the engine and session factory, then any missing tables."""
    global _engine, _session_factory

    database_url = database_url or get_database_url()
    logger.info(f"Initializing database: {database_url.split('://', 1)[0]}")

    engine_kwargs = {"echo": False}
    if "sqlite" in database_url:
        engine_kwargs["poolclass"] = NullPool
        _ensure_sqlite_directory(database_url)
    else:
        engine_kwargs["pool_pre_ping"] = True

    _engine = create_async_engine(database_url, **engine_kwargs)

    _session_factory = async_sessionmaker(
        _engine, class_=AsyncSession, expire_on_commit=False
    )

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")


async def close_database() -> None:
    """Dispose of the engine; safe to call when never initialized."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        logger.info("Database connection closed")
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker:
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_factory


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session that rolls back if the body raises."""
    if not _session_factory:
        await init_database()

    async with _session_factory() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise


async def health_check() -> bool:
    """Run SELECT 1; False when the database is unreachable or uninitialized."""
    if not _session_factory:
        logger.warning("Health check before database initialization")
        return False

    try:
        async with get_db_session() as session:
            result = await session.execute(text("SELECT 1"))
            value = result.scalar()
            is_healthy = value == 1
            if not is_healthy:
                logger.warning(
                    f"Database health check query returned unexpected value: {value}"
                )
            return is_healthy
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return False
