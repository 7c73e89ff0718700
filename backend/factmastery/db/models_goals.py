"""
SQLAlchemy Database Models for Daily Goals

Tables:
- daily_goal_sets: One row per (user, track, practice day)
- daily_goals: Per-goal-type counters inside a set
- daily_goal_credits: Ledger of facts already counted toward a goal today

Idempotency:
    A fact is credited by inserting a ledger row (unique per set, goal type,
    and fact) and bumping the counter with ``completed + 1 <= total`` in the
    same transaction. Duplicate or over-cap credits fail one of the two
    guards and leave nothing behind.
"""

from datetime import date, datetime, timezone
from typing import List


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from factmastery.db.base import Base


class DailyGoalSet(Base):
    """
    A student's goals for one track on one practice day.

    Created lazily on first access. Afterwards only counters, completion
    flags, and placement-phase expansion change it.

    Attributes:
        half_completed: Set once when at least half the goal types are done.
        all_completed: Set once when every goal type is done.
        goals: Goal counters in this set.
    """

    __tablename__ = "daily_goal_sets"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "track_id", "goal_date", name="uq_daily_goal_sets_user_track_date"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    track_id: Mapped[str] = mapped_column(String(32), nullable=False)
    goal_date: Mapped[date] = mapped_column(Date, nullable=False)
    half_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    all_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )

    goals: Mapped[List["DailyGoal"]] = relationship(
        "DailyGoal",
        back_populates="goal_set",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DailyGoal.id",
    )


class DailyGoal(Base):
    """
    Counter for one goal type inside a daily goal set.

    Attributes:
        goal_type: GoalType value.
        total: Target count for the day.
        completed: Progress toward total, never above it.
    """

    __tablename__ = "daily_goals"
    __table_args__ = (
        UniqueConstraint("goal_set_id", "goal_type", name="uq_daily_goals_set_type"),
        CheckConstraint("completed >= 0", name="ck_daily_goals_completed_nonneg"),
        CheckConstraint("completed <= total", name="ck_daily_goals_completed_le_total"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    goal_set_id: Mapped[int] = mapped_column(
        ForeignKey("daily_goal_sets.id", ondelete="CASCADE"), nullable=False
    )
    goal_type: Mapped[str] = mapped_column(String(20), nullable=False)
    total: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    goal_set: Mapped["DailyGoalSet"] = relationship(
        "DailyGoalSet", back_populates="goals"
    )


class DailyGoalCredit(Base):
    """Ledger row: ``fact_id`` has been counted toward ``goal_type`` today."""

    __tablename__ = "daily_goal_credits"
    __table_args__ = (
        UniqueConstraint(
            "goal_set_id", "goal_type", "fact_id", name="uq_daily_goal_credits_fact"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    goal_set_id: Mapped[int] = mapped_column(
        ForeignKey("daily_goal_sets.id", ondelete="CASCADE"), nullable=False, index=True
    )
    goal_type: Mapped[str] = mapped_column(String(20), nullable=False)
    fact_id: Mapped[str] = mapped_column(String(32), nullable=False)
    credited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
