"""Shared pytest fixtures for test suite."""

import os
from collections.abc import AsyncGenerator

# Set test environment variables BEFORE any app imports
# This ensures tracing and other features are disabled during app initialization
os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["OTEL_ENABLED"] = "false"  # Disable OpenTelemetry to prevent background threads
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BCRYPT_ROUNDS"] = "4"  # Keep password hashing fast
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["S3_BUCKET_NAME"] = "inkwell-test"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import inkwell.models  # noqa: F401  registers every table on Base.metadata
from inkwell.core.config import Settings
from inkwell.core.database import enable_sqlite_savepoints, get_db
from inkwell.main import app
from inkwell.models.base import Base


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Get settings configured for testing.

    Returns:
        Settings: Test environment settings
    """
    return Settings(
        environment="testing",
        log_level="WARNING",
    )


# ===== Database Fixtures =====


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory SQLite engine with every table.

    StaticPool keeps the single in-memory connection alive for the whole
    test, and the savepoint hooks make nested transactions work.

    Yields:
        AsyncEngine: Test database engine
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a clean test database session with transaction rollback.

    Args:
        test_engine: Test database engine

    Yields:
        AsyncSession: Clean database session for testing
    """
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        try:
            yield session
        finally:
            # Always rollback to ensure test isolation
            await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_session: AsyncSession) -> AsyncSession:
    """Alias for test_session to match common naming convention."""
    return test_session


# ===== API Client Fixtures =====


@pytest_asyncio.fixture
async def async_client(test_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing.

    ``get_db`` is overridden to hand out the test session.

    Yields:
        AsyncClient: HTTP client for testing FastAPI endpoints
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client
    app.dependency_overrides.clear()


# ===== Utility Fixtures =====


@pytest.fixture
def anyio_backend() -> str:
    """Specify asyncio as the backend for anyio tests."""
    return "asyncio"
