"""Database connection management with async SQLAlchemy."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from inkwell.core.config import settings
from inkwell.core.logging import get_logger

logger = get_logger(__name__)


class DBErrorMessage:
    """Standardized database error messages."""
    CREATE_ENGINE_NO_URL = "DATABASE_URL is not configured"
    CREATE_ENGINE_MIN_DB_POOL_SIZE = "DATABASE_POOL_SIZE must be at least 1"
    CREATE_ENGINE_NEGATIVE_MAX_OVERFLOW = "DATABASE_MAX_OVERFLOW must be non-negative"
    CREATE_ENGINE_INVALID_POOL_TIMEOUT = "DATABASE_POOL_TIMEOUT must be positive"
    CREATE_ENGINE_FAILED = "Failed to create database engine"

    CLOSE_DATABASE_FAILED = "Failed to close database connections"


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Hand transaction control to SQLAlchemy on SQLite connections.

    The sqlite3 driver issues its own BEGIN lazily, which breaks SAVEPOINT
    handling. Nested transactions (used by ordered bulk inserts) need the
    driver's transaction handling switched off and an explicit BEGIN.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_engine() -> AsyncEngine:
    """Create AsyncEngine with connection pooling configuration.

    Returns:
        AsyncEngine: Configured async SQLAlchemy engine

    Connection Pool Configuration:
        - pool_size: Number of connections to keep in the pool (default: 10)
        - max_overflow: Maximum overflow connections (default: 5)
        - pool_timeout: Seconds to wait for a pooled connection (default: 5)
        - connect timeout: Seconds before a new connection attempt fails (default: 45)

    Raises:
        ValueError: If database URL is invalid or settings are misconfigured
    """
    try:
        if not settings.database_url:
            raise ValueError(DBErrorMessage.CREATE_ENGINE_NO_URL)

        if settings.database_pool_size < 1:
            raise ValueError(DBErrorMessage.CREATE_ENGINE_MIN_DB_POOL_SIZE)

        if settings.database_max_overflow < 0:
            raise ValueError(DBErrorMessage.CREATE_ENGINE_NEGATIVE_MAX_OVERFLOW)

        if settings.database_pool_timeout <= 0:
            raise ValueError(DBErrorMessage.CREATE_ENGINE_INVALID_POOL_TIMEOUT)

        logger.info(
            "Creating async database engine",
            url=settings.database_url.split("@")[1] if "@" in settings.database_url else "***",
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
        )

        # SQLite keeps the dialect default pool
        pool_kwargs: dict[str, Any] = {}
        if not settings.is_sqlite:
            pool_kwargs = {
                "pool_size": settings.database_pool_size,
                "max_overflow": settings.database_max_overflow,
                "pool_timeout": settings.database_pool_timeout,
            }

        engine = create_async_engine(
            settings.database_url,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={"timeout": settings.database_connect_timeout},
            **pool_kwargs,
        )

        if settings.is_sqlite:
            enable_sqlite_savepoints(engine)

        return engine
    except ValueError:
        raise
    except Exception as e:
        logger.error("Failed to create database engine", error=str(e))
        raise ValueError(DBErrorMessage.CREATE_ENGINE_FAILED) from e


engine: AsyncEngine = create_engine()

async_session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    The request owns the transaction: it is committed when the handler
    returns and rolled back when it raises. Repositories only flush.

    Yields:
        AsyncSession: Database session for route handlers

    Example:
        @app.get("/posts")
        async def list_posts(db: AsyncSession = Depends(get_db)):
            return await PostRepository(db).find_published()
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error("Database session rolled back", error=str(e), error_type=type(e).__name__)
            raise


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Transactional scope for scripts and background jobs."""
    async with async_session_maker() as session:
        async with session.begin():
            yield session


async def check_database_connection() -> bool:
    """Check if database connection is available.

    Used for health checks and diagnostics.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.debug("Database connection check passed")
        return True
    except Exception as e:
        logger.error("Database connection check failed", error=str(e))
        return False


async def close_database() -> None:
    """Close all database connections.

    Should be called during application shutdown.

    Raises:
        RuntimeError: If graceful shutdown fails
    """
    try:
        logger.info("Closing database connections")
        await engine.dispose()
    except Exception as e:
        logger.error("Error closing database connections", error=str(e))
        raise RuntimeError(DBErrorMessage.CLOSE_DATABASE_FAILED) from e
