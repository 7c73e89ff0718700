"""
FastAPI Dependencies

Common dependencies for the practice day, signal publishing, and the
services built on a request's database session.
"""

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from factmastery.db.base import get_db
from factmastery.services.goals import (
    DailyGoalsService,
    GoalRecalculationRegistry,
    GoalSignalSink,
    RedisSignalSink,
)
from factmastery.services.learning import FactProgressService


async def get_practice_date(
    x_user_date: Optional[str] = Header(None, alias="X-User-Date"),
) -> date:
    """
    Resolve the student's current practice day.

    The day is computed upstream from the student's timezone and passed in
    the X-User-Date header as YYYY-MM-DD. Without the header the UTC date is
    used.

    Raises:
        HTTPException: 422 if the header is not a valid ISO date
    """
    if not x_user_date:
        return datetime.now(timezone.utc).date()

    try:
        return date.fromisoformat(x_user_date.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid X-User-Date header: {x_user_date!r} (expected YYYY-MM-DD)",
        )


def get_signal_sink() -> GoalSignalSink:
    """Get the completion signal sink."""
    return RedisSignalSink()


def get_recalculation_registry(request: Request) -> Optional[GoalRecalculationRegistry]:
    """Get the per-process recalculation registry created at startup."""
    return getattr(request.app.state, "goal_recalculator", None)


async def get_daily_goals_service(
    db: AsyncSession = Depends(get_db),
    signals: GoalSignalSink = Depends(get_signal_sink),
    recalculator: Optional[GoalRecalculationRegistry] = Depends(get_recalculation_registry),
) -> DailyGoalsService:
    """Get daily goals service."""
    return DailyGoalsService(db, signals=signals, recalculator=recalculator)


async def get_fact_progress_service(
    db: AsyncSession = Depends(get_db),
    goals: DailyGoalsService = Depends(get_daily_goals_service),
    recalculator: Optional[GoalRecalculationRegistry] = Depends(get_recalculation_registry),
) -> FactProgressService:
    """Get fact progress service."""
    return FactProgressService(db, goals=goals, recalculator=recalculator)
