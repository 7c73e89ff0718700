"""
Daily Goals API Router

Endpoints for daily goals and goal history.

Endpoints:
- GET /api/goals/summary - Goal counts per day across tracks
- GET /api/goals/{track_id} - Today's goals for a track
- POST /api/goals/{track_id}/progress - Advance a goal (e.g. a finished assessment)
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from factmastery.config import settings
from factmastery.dependencies import get_daily_goals_service, get_practice_date
from factmastery.middleware.error_handling import ValidationError
from factmastery.middleware.rate_limit import limit_goals
from factmastery.models.goals import (
    DailyGoalsResponse,
    DailyGoalsSummaryEntry,
    GoalIncrementRequest,
    GoalsSummaryResponse,
)
from factmastery.services.goals import DailyGoalsService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/goals", tags=["goals"])


# Declared before /{track_id} so "summary" is not taken for a track id
@router.get("/summary", response_model=GoalsSummaryResponse)
async def get_goals_summary(
    user_id: str = Query(..., min_length=1),
    track_ids: str = Query(..., description="Comma-separated track ids"),
    days: int = Query(settings.GOALS_SUMMARY_DEFAULT_DAYS, ge=1, le=settings.GOALS_SUMMARY_MAX_DAYS),
    today: date = Depends(get_practice_date),
    service: DailyGoalsService = Depends(get_daily_goals_service),
) -> GoalsSummaryResponse:
    """Goal totals per day for the last ``days`` days, newest first."""
    tracks = [track.strip() for track in track_ids.split(",") if track.strip()]
    if not tracks:
        raise ValidationError("At least one track id is required", details={"track_ids": track_ids})

    summaries = await service.get_goals_summary(user_id, tracks, today, days=days)
    return GoalsSummaryResponse(
        user_id=user_id,
        track_ids=tracks,
        days=[DailyGoalsSummaryEntry.from_summary(summary) for summary in summaries],
    )


@router.get("/{track_id}", response_model=DailyGoalsResponse)
@limit_goals
async def get_daily_goals(
    request: Request,
    track_id: str,
    user_id: str = Query(..., min_length=1),
    practice_date: date = Depends(get_practice_date),
    service: DailyGoalsService = Depends(get_daily_goals_service),
) -> DailyGoalsResponse:
    """
    Get today's goals for a track.

    The goal set is created from the student's current fact statuses on
    first access each day.
    """
    snapshot = await service.get_daily_goals(user_id, track_id, practice_date)
    return DailyGoalsResponse.from_snapshot(snapshot)


@router.post("/{track_id}/progress", response_model=DailyGoalsResponse)
@limit_goals
async def increment_goal(
    request: Request,
    track_id: str,
    body: GoalIncrementRequest,
    practice_date: date = Depends(get_practice_date),
    service: DailyGoalsService = Depends(get_daily_goals_service),
) -> DailyGoalsResponse:
    """
    Advance a goal that is not tied to individual facts.

    A goal that is already complete is left as is. Returns 422 if the goal
    type is not part of today's goals.
    """
    snapshot = await service.increment_goal(
        body.user_id, track_id, practice_date, body.goal_type, body.increment
    )
    return DailyGoalsResponse.from_snapshot(snapshot)
