"""
API Models (Pydantic)

Request/response schemas for the HTTP surface.
"""

from factmastery.models.base import ErrorDetail, StrictRequest, StrictResponse, SuccessResponse
from factmastery.models.goals import (
    DailyGoalsResponse,
    DailyGoalsSummaryEntry,
    GoalIncrementRequest,
    GoalProgressResponse,
    GoalsSummaryResponse,
)
from factmastery.models.progress import (
    AttemptEntry,
    ContextStatsResponse,
    FactProgressResponse,
    ResetProgressResponse,
    SubmitAttemptsRequest,
    TrackProgressResponse,
)

__all__ = [
    "StrictRequest",
    "StrictResponse",
    "ErrorDetail",
    "SuccessResponse",
    "AttemptEntry",
    "SubmitAttemptsRequest",
    "ContextStatsResponse",
    "FactProgressResponse",
    "TrackProgressResponse",
    "ResetProgressResponse",
    "GoalIncrementRequest",
    "GoalProgressResponse",
    "DailyGoalsResponse",
    "DailyGoalsSummaryEntry",
    "GoalsSummaryResponse",
]
