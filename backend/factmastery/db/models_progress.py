"""
SQLAlchemy Database Models for Fact Progress

Tables:
- user_profiles: Grade and focus track per student (owned by the roster sync)
- track_progress: One row per (user, track) with aggregate metrics
- fact_progress: One row per (user, track, fact) holding the fact's mastery state

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    There is a corresponding Pydantic file: factmastery/models/progress.py

    Data flows: Service Layer → FactState → SQLAlchemy → Database

Concurrency:
    fact_progress rows carry a ``version`` counter. Writers update with
    ``WHERE version = :expected`` and re-read on a miss, so two requests for
    the same fact never silently overwrite each other.
"""

from datetime import date, datetime, timezone
from typing import Optional


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


from sqlalchemy import (
    Date,
    DateTime,
    Float,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from factmastery.db.base import Base


class UserProfile(Base):
    """
    Student profile fields the progression engine reads.

    Written by the roster synchronization collaborator; read-only here.

    Attributes:
        user_id: External user identifier.
        grade: Grade level 0-12. Selects the fluency target.
        focus_track: Track id the student is pinned to, or "ALL" / null
            for no override.
    """

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    grade: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    focus_track: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


class TrackProgress(Base):
    """
    Per-track progress summary for a student.

    Aggregates are recomputed from fact rows after every attempt batch and
    written last-writer-wins.

    Attributes:
        overall_cqpm: Correct answers per minute across all facts.
        accuracy_rate: Lifetime correct / attempts as a fraction 0.0-1.0.
    """

    __tablename__ = "track_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "track_id", name="uq_track_progress_user_track"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    track_id: Mapped[str] = mapped_column(String(32), nullable=False)
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )
    overall_cqpm: Mapped[float] = mapped_column(Float, default=0.0)
    accuracy_rate: Mapped[float] = mapped_column(Float, default=0.0)


class FactProgress(Base):
    """
    Mastery state of one fact for one student on one track.

    Attributes:
        status: FactStatus wire value.
        attempts / correct / time_spent_ms: Lifetime counters.
        today_stats: Practice-context label -> per-day counters
            ({attempts, correct, time_spent_ms, avg_response_time_sec, date}).
            Only ever holds stats for ``last_attempt_date``.
        last_attempt_date: Practice day today_stats belong to.
        status_updated_at: When status last changed.
        accuracy_streak: Consecutive qualifying days while in accuracyPractice.
            Null in every other status.
        retention_day: Current retention interval (1, 3, 7, 16, 35, 75).
            Null unless mastered.
        next_retention_date: Day the next retention test becomes due.
            Null unless mastered.
        version: Optimistic concurrency counter, bumped on every write.
    """

    __tablename__ = "fact_progress"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "track_id", "fact_id", name="uq_fact_progress_user_track_fact"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    track_id: Mapped[str] = mapped_column(String(32), nullable=False)
    fact_id: Mapped[str] = mapped_column(String(32), nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    correct: Mapped[int] = mapped_column(Integer, default=0)
    time_spent_ms: Mapped[int] = mapped_column(Integer, default=0)

    today_stats: Mapped[dict] = mapped_column(JSONB, default=dict)
    last_attempt_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    accuracy_streak: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    retention_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    next_retention_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )
