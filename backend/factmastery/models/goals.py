"""
Daily Goals API Models (Pydantic)

Request/response schemas for daily goals and goal history.
"""

from datetime import date

from pydantic import Field

from factmastery.enums import GoalType
from factmastery.models.base import StrictRequest, StrictResponse
from factmastery.services.goals import DailyGoalsSummary, GoalSetSnapshot


class GoalIncrementRequest(StrictRequest):
    """Advance a goal that is not tied to individual facts (e.g. assessment)."""

    user_id: str = Field(..., min_length=1)
    goal_type: GoalType
    increment: int = Field(1, ge=1)


class GoalProgressResponse(StrictResponse):
    total: int
    completed: int


class DailyGoalsResponse(StrictResponse):
    """The day's goal set for one track."""

    date: date
    track_id: str
    goals: dict[GoalType, GoalProgressResponse]
    half_completed: bool = False
    all_completed: bool = False

    @classmethod
    def from_snapshot(cls, snapshot: GoalSetSnapshot) -> "DailyGoalsResponse":
        return cls(
            date=snapshot.goal_date,
            track_id=snapshot.track_id,
            goals={
                goal_type: GoalProgressResponse(total=counter.total, completed=counter.completed)
                for goal_type, counter in snapshot.goals.items()
            },
            half_completed=snapshot.half_completed,
            all_completed=snapshot.all_completed,
        )


class DailyGoalsSummaryEntry(StrictResponse):
    date: date
    goals_count: int
    goals_achieved_count: int

    @classmethod
    def from_summary(cls, summary: DailyGoalsSummary) -> "DailyGoalsSummaryEntry":
        return cls(
            date=summary.goal_date,
            goals_count=summary.goals_count,
            goals_achieved_count=summary.goals_achieved_count,
        )


class GoalsSummaryResponse(StrictResponse):
    """Per-day goal counts, newest first."""

    user_id: str
    track_ids: list[str]
    days: list[DailyGoalsSummaryEntry]
