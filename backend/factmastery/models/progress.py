"""
Fact Progress API Models (Pydantic)

Request/response schemas for attempt submission and track progress.

ARCHITECTURE NOTE:
    The corresponding SQLAlchemy models live in factmastery/db/models_progress.py.
    Routers convert these models to and from the service-layer dataclasses
    in factmastery/services/learning/state.py.

    Data flows: API Request → Pydantic → AttemptInput → Service → FactStore
"""

from datetime import date, datetime
from typing import Optional

from pydantic import Field, model_validator

from factmastery.enums import FactStatus
from factmastery.models.base import StrictRequest, StrictResponse
from factmastery.services.learning import (
    DEFAULT_PRACTICE_CONTEXT,
    AttemptInput,
    ContextStats,
    FactState,
    TrackProgressView,
)


# ===========================================
# Requests
# ===========================================


class AttemptEntry(StrictRequest):
    """One fact's attempts in a batch."""

    attempts: int = Field(0, ge=0, description="Attempts made in this batch")
    correct: int = Field(0, ge=0, description="Correct answers in this batch")
    time_spent_ms: int = Field(0, ge=0, description="Total answer time in milliseconds")
    practice_context: str = Field(
        DEFAULT_PRACTICE_CONTEXT,
        min_length=1,
        description="Practice mode label, e.g. 'accuracy2' or 'fluency1'",
    )
    status: Optional[FactStatus] = Field(
        None, description="Explicit status override, adopted unconditionally"
    )

    @model_validator(mode="after")
    def check_correct_within_attempts(self) -> "AttemptEntry":
        if self.correct > self.attempts:
            raise ValueError("correct cannot exceed attempts")
        return self

    def to_input(self) -> AttemptInput:
        return AttemptInput(
            attempts=self.attempts,
            correct=self.correct,
            time_spent_ms=self.time_spent_ms,
            practice_context=self.practice_context,
            status=self.status,
        )


class SubmitAttemptsRequest(StrictRequest):
    """Attempt batch keyed by fact id."""

    user_id: str = Field(..., min_length=1)
    facts: dict[str, AttemptEntry] = Field(..., description="factId → attempt entry")


# ===========================================
# Responses
# ===========================================


class ContextStatsResponse(StrictResponse):
    attempts: int
    correct: int
    time_spent_ms: int
    avg_response_time_sec: Optional[float] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_stats(cls, stats: ContextStats) -> "ContextStatsResponse":
        return cls(
            attempts=stats.attempts,
            correct=stats.correct,
            time_spent_ms=stats.time_spent_ms,
            avg_response_time_sec=stats.avg_response_time_sec,
            updated_at=stats.updated_at,
        )


class FactProgressResponse(StrictResponse):
    """Mastery state of one fact."""

    fact_id: str
    status: FactStatus
    attempts: int
    correct: int
    time_spent_ms: int
    today_stats: dict[str, ContextStatsResponse] = Field(default_factory=dict)
    last_attempt_date: Optional[date] = None
    status_updated_at: Optional[datetime] = None
    accuracy_streak: Optional[int] = None
    retention_day: Optional[int] = None
    next_retention_date: Optional[date] = None

    @classmethod
    def from_state(cls, state: FactState) -> "FactProgressResponse":
        return cls(
            fact_id=state.fact_id,
            status=state.status,
            attempts=state.attempts,
            correct=state.correct,
            time_spent_ms=state.time_spent_ms,
            today_stats={
                context: ContextStatsResponse.from_stats(stats)
                for context, stats in state.today_stats.items()
            },
            last_attempt_date=state.last_attempt_date,
            status_updated_at=state.status_updated_at,
            accuracy_streak=state.accuracy_streak,
            retention_day=state.retention_day,
            next_retention_date=state.next_retention_date,
        )


class TrackProgressResponse(StrictResponse):
    """A student's progress on one track."""

    track_id: str
    start_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    overall_cqpm: float = 0.0
    accuracy_rate: float = 0.0
    facts: dict[str, FactProgressResponse] = Field(default_factory=dict)

    @classmethod
    def from_view(cls, view: TrackProgressView) -> "TrackProgressResponse":
        return cls(
            track_id=view.track_id,
            start_date=view.start_date,
            last_updated=view.last_updated,
            overall_cqpm=view.overall_cqpm,
            accuracy_rate=view.accuracy_rate,
            facts={
                fact_id: FactProgressResponse.from_state(state)
                for fact_id, state in view.facts.items()
            },
        )


class ResetProgressResponse(StrictResponse):
    track_id: str
    facts_removed: int
