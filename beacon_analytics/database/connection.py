"""
Database Connection Management

Async SQLAlchemy 2.0 engine over an embedded SQLite file (aiosqlite driver).
Every connection runs in WAL mode with foreign keys enforced and a busy
timeout, so concurrent readers never block the single writer and competing
writers wait rather than fail.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from beacon_analytics.config.settings import DatabaseSettings
from beacon_analytics.database.models import Base

logger = structlog.get_logger(__name__)

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def build_engine(url: str, echo: bool = False, busy_timeout: float = 5.0) -> AsyncEngine:
    """
    Create an async engine with the SQLite pragmas the store relies on.

    Args:
        url: SQLAlchemy database URL (``sqlite+aiosqlite:///...``)
        echo: Echo SQL statements
        busy_timeout: Seconds a connection waits for a write lock

    Returns:
        AsyncEngine: Configured engine
    """
    engine = create_async_engine(
        url,
        echo=echo,
        # One connection per session; SQLite handles its own locking
        poolclass=NullPool,
        connect_args={"timeout": busy_timeout},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout * 1000)}")
        cursor.close()

    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by the ingestion, aggregation and retention services"""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables and indexes that do not exist yet"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database(db_settings: DatabaseSettings) -> AsyncEngine:
    """
    Initialize the database engine and schema.

    Returns:
        AsyncEngine: The initialized database engine
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    db_settings.ensure_directory()
    _engine = build_engine(
        db_settings.async_url,
        echo=db_settings.echo,
        busy_timeout=db_settings.busy_timeout,
    )
    _async_session_factory = build_session_factory(_engine)

    try:
        await create_schema(_engine)
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established", path=db_settings.path)
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        await close_database()
        raise

    return _engine


async def close_database() -> None:
    """Dispose of the engine"""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database engine disposed")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get the session factory.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _async_session_factory


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    Context manager that provides a database session and handles
    commit/rollback/close automatically.

    Example:
        async with get_db() as db:
            result = await db.execute(query)
    """
    session = get_session_factory()()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()


async def check_database_health() -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    import time

    try:
        start = time.perf_counter()
        async with get_db() as db:
            await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
