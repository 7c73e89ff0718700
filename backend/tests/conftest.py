"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across unit and integration tests.
"""

import os
import sys
from datetime import date
from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE any fixtures run
# This ensures POSTGRES_TEST_* variables are available
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try backend directory
    _backend_env = Path(__file__).parent.parent / ".env"
    if _backend_env.exists():
        load_dotenv(_backend_env)


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    This ensures tests run with predictable configuration, overriding
    any values from .env files to ensure test isolation.
    """
    original_env = os.environ.copy()

    test_env = {
        "POSTGRES_HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "POSTGRES_PORT": os.environ.get("POSTGRES_PORT", "5432"),
        "POSTGRES_USER": os.environ.get("POSTGRES_TEST_USER", "testuser"),
        "POSTGRES_PASSWORD": os.environ.get("POSTGRES_TEST_PASSWORD", "testpass"),
        "POSTGRES_DB": os.environ.get("POSTGRES_TEST_DB", "testdb"),
        "REDIS_URL": os.environ.get("REDIS_URL", "redis://localhost:6379/1"),
        "RATE_LIMIT_ENABLED": "false",
        "DEBUG": "true",
    }
    os.environ.update(test_env)

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Sample Configuration Data
# ============================================================================


@pytest.fixture
def sample_yaml_config() -> dict[str, Any]:
    """
    Provide a sample YAML configuration for testing.

    This matches the structure of config/default.yaml.
    """
    return {
        "app": {"name": "Test Fact Mastery"},
        "database": {
            "pool_size": 3,
            "max_overflow": 5,
            "pool_timeout": 10,
        },
        "redis": {
            "max_connections": 4,
            "signal_queue": "test:signals",
        },
        "logging": {"format": "%(levelname)s %(message)s"},
    }


# ============================================================================
# Dates
# ============================================================================


@pytest.fixture
def today() -> date:
    """A fixed practice day so schedules are deterministic."""
    return date(2024, 5, 15)


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_redis() -> MagicMock:
    """
    Create a mock Redis client for unit testing.

    This allows testing Redis-dependent code without a real Redis server.
    """
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.ping = AsyncMock(return_value=True)
    mock.rpush = AsyncMock(return_value=1)
    mock.lpop = AsyncMock(return_value=None)
    mock.llen = AsyncMock(return_value=0)
    return mock


@pytest.fixture
def mock_db_session() -> MagicMock:
    """
    Create a mock database session for unit testing.
    """
    mock = MagicMock()
    mock.execute = AsyncMock()
    mock.get = AsyncMock(return_value=None)
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def mock_signals() -> MagicMock:
    """Completion signal sink that records emitted signals."""
    sink = MagicMock()
    sink.emit = AsyncMock()
    return sink
