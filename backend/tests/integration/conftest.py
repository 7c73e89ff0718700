"""
Integration Test Fixtures

Provides fixtures for integration tests that require running services.
These fixtures set up real database connections and clean up after tests.

IMPORTANT: All integration tests use the TEST database only (via POSTGRES_TEST_* env vars).
The async_test_client fixture overrides get_db to ensure the production database is never
touched. A safety check fixture (verify_test_database) runs at session start to fail fast if
production credentials are detected.

Note: factmastery.main imports are kept inside fixtures because they require
environment variables that are set up by the session-scoped fixtures
in the parent conftest.py.
"""

import os
from pathlib import Path
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import quote_plus

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Load .env file FIRST, before reading any environment variables
# This ensures POSTGRES_TEST_* variables are available
_project_root = Path(__file__).parent.parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


# =============================================================================
# Safety Check - Runs before any integration tests
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def verify_test_database():
    """
    Safety check: Verify we're using test database credentials.

    This runs once at the start of the integration test session and fails fast
    if production credentials are detected. Applies to ALL integration tests.

    Set ALLOW_PROD_DB_TESTS=1 to skip this check (for local development only).
    """
    if os.environ.get("ALLOW_PROD_DB_TESTS", "").lower() in ("1", "true", "yes"):
        return

    db_name = get_test_db_config()["db"]

    assert db_name != "factmastery", (
        "SAFETY CHECK FAILED: Tests are pointed at the application database! "
        "Set POSTGRES_TEST_DB environment variable or ALLOW_PROD_DB_TESTS=1."
    )
    for indicator in ["prod", "production"]:
        assert indicator not in db_name.lower(), (
            f"SAFETY CHECK FAILED: Database name '{db_name}' looks like production! "
            "Set POSTGRES_TEST_DB environment variable or ALLOW_PROD_DB_TESTS=1."
        )


# =============================================================================
# Database Configuration
# =============================================================================


def get_test_db_config() -> dict:
    """
    Get test database configuration from environment variables.

    Priority: POSTGRES_TEST_* > POSTGRES_* > defaults
    """
    return {
        "host": os.environ.get("POSTGRES_HOST", "localhost"),
        "port": os.environ.get("POSTGRES_PORT", "5432"),
        "user": os.environ.get(
            "POSTGRES_TEST_USER",
            os.environ.get("POSTGRES_USER", "testuser")
        ),
        "password": os.environ.get(
            "POSTGRES_TEST_PASSWORD",
            os.environ.get("POSTGRES_PASSWORD", "testpass")
        ),
        "db": os.environ.get(
            "POSTGRES_TEST_DB",
            os.environ.get("POSTGRES_DB", "testdb")
        ),
    }


def get_test_db_url(async_driver: bool = True) -> str:
    """Build database URL from test config environment variables."""
    config = get_test_db_config()
    # URL-encode the password to handle special characters
    encoded_password = quote_plus(config["password"])
    driver = "postgresql+asyncpg" if async_driver else "postgresql+psycopg2"
    return f"{driver}://{config['user']}:{encoded_password}@{config['host']}:{config['port']}/{config['db']}"


# Child tables first so TRUNCATE order respects foreign keys
TABLES_TO_CLEAN = [
    "daily_goal_credits",
    "daily_goals",
    "daily_goal_sets",
    "fact_progress",
    "track_progress",
    "user_profiles",
]


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Create database tables before any tests run.

    Uses synchronous SQLAlchemy to avoid event loop issues.
    Tables are dropped and recreated at the start of the test session
    to ensure schema is up-to-date with models.
    """
    # Importing base registers every model with Base.metadata
    from factmastery.db.base import Base

    sync_engine = create_engine(get_test_db_url(async_driver=False))

    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)

    yield

    sync_engine.dispose()


async def _truncate(session: AsyncSession) -> None:
    for table in TABLES_TO_CLEAN:
        await session.execute(text(f"TRUNCATE TABLE {table} CASCADE"))
    await session.commit()


@pytest_asyncio.fixture(scope="function")
async def clean_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session with cleaned tables for testing.

    Creates its own session and truncates tables before/after each test.
    WARNING: This truncates tables! Only use for integration tests.
    """
    test_engine = create_async_engine(get_test_db_url(async_driver=True), echo=False)
    test_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with test_session_maker() as session:
        await _truncate(session)

        yield session

        # Rollback any pending transaction before cleanup
        await session.rollback()
        await _truncate(session)

    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker() -> AsyncGenerator[async_sessionmaker, None]:
    """
    Session factory on the test database for tests that need two
    independent sessions (concurrent writers).
    """
    test_engine = create_async_engine(get_test_db_url(async_driver=True), echo=False)
    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    await test_engine.dispose()


@pytest.fixture
def recorded_signals() -> MagicMock:
    """Signal sink that records completion signals instead of publishing them."""
    sink = MagicMock()
    sink.emit = AsyncMock()
    return sink


@pytest_asyncio.fixture
async def async_test_client(clean_db: AsyncSession, recorded_signals: MagicMock):
    """
    Create an async HTTP client configured to use the test database.

    IMPORTANT: This overrides the app's get_db dependency to ensure
    tests NEVER touch the production database. Completion signals are
    captured by ``recorded_signals`` instead of going to Redis.

    Note: As of httpx 0.28+, ASGITransport must be used instead of passing
    `app` directly to AsyncClient.
    """
    # Import here to defer until after environment is configured
    from factmastery.db.base import get_db
    from factmastery.dependencies import get_signal_sink
    from factmastery.main import app

    async def get_test_db():
        """Yield the test database session instead of production."""
        yield clean_db

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_signal_sink] = lambda: recorded_signals

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_signal_sink, None)
