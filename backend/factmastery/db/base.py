"""
PostgreSQL engine and sessions for fact progress and daily goals.

One async engine per process. Request handlers get a session through the
``get_db`` dependency, which commits once the progression or goal service
call returns and rolls back if it raised. Background work that outlives a
request (goal recalculation checks) opens its own sessions from
``async_session_maker``.

The declarative ``Base`` carries the fact progress tables (user_profiles,
track_progress, fact_progress) and the daily goal tables (daily_goal_sets,
daily_goals, daily_goal_credits). Alembic migrations are authoritative;
``init_db`` only fills in missing tables for local runs and tests.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from factmastery.config import settings, yaml_config


def pool_options(db_config: dict[str, Any]) -> dict[str, Any]:
    """Connection pool keyword arguments from the ``database`` config section."""
    return {
        "pool_size": db_config.get("pool_size", 5),
        "max_overflow": db_config.get("max_overflow", 10),
        "pool_timeout": db_config.get("pool_timeout", 30),
        # Connections idle across a practice session may have been dropped
        "pool_pre_ping": db_config.get("pool_pre_ping", True),
    }


engine = create_async_engine(
    settings.POSTGRES_URL,
    echo=settings.DEBUG,
    **pool_options(yaml_config.get("database", {})),
)

# Sessions stay readable after commit; services build response views from
# the rows they just wrote.
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for fact progress and daily goal tables."""


# Registered after Base exists so the model modules can import it.
from factmastery.db import models_goals, models_progress  # noqa: F401, E402


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for routers and the services they build.

    A fact write conflict or goal store error raised by the handler rolls
    back every write made in the request.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create any fact progress or daily goal table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
