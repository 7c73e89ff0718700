"""
Daily Goals Service

Creates, credits, and completes a student's daily goals.

Usage:
    from factmastery.services.goals import DailyGoalsService

    service = DailyGoalsService(db_session, signals=RedisSignalSink())

    # Today's goals (created on first access)
    goals = await service.get_daily_goals("user-1", "TRACK5", date.today())

    # Count a fact toward the accuracy goal (idempotent)
    await service.credit_fact("user-1", "TRACK5", date.today(), GoalType.ACCURACY, "FACT400")

    # Record a finished assessment
    await service.increment_goal("user-1", "TRACK5", date.today(), GoalType.ASSESSMENT)

Milestones:
    After every successful credit or increment the set is checked; the
    half-completed and all-completed flags are each flipped exactly once and
    a signal is emitted by whichever request flipped them.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from factmastery.config import settings
from factmastery.curriculum import get_track
from factmastery.enums import GoalSignalType, GoalType
from factmastery.middleware.error_handling import StoreError, ValidationError
from factmastery.services.goals.calculator import (
    calculate_goal_totals,
    completion_milestones,
    count_unattempted,
    in_placement_phase,
    plan_expansion,
    practice_goal_counts,
)
from factmastery.services.goals.signals import GoalSignalSink
from factmastery.services.goals.store import GoalSetSnapshot, GoalStore
from factmastery.services.learning.fact_store import FactStore

if TYPE_CHECKING:
    from factmastery.services.goals.recalculation import GoalRecalculationRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyGoalsSummary:
    """Goal totals for one day across the requested tracks."""

    goal_date: date
    goals_count: int
    goals_achieved_count: int


class DailyGoalsService:
    """
    Service for a student's daily goals.

    Provides:
    - Lazy creation of the day's goal set from fact status counts
    - Idempotent per-fact credits and capped increments
    - Exactly-once 50% / 100% completion signals
    - Placement-phase goal expansion
    - Multi-day summaries
    """

    def __init__(
        self,
        db: AsyncSession,
        signals: GoalSignalSink,
        recalculator: Optional["GoalRecalculationRegistry"] = None,
    ):
        """
        Initialize the daily goals service.

        Args:
            db: Async database session
            signals: Sink for completion signals
            recalculator: Registry running placement-phase recalculation
                loops; without one, assessment increments only try an
                immediate recalculation
        """
        self.db = db
        self.store = GoalStore(db)
        self.facts = FactStore(db)
        self.signals = signals
        self.recalculator = recalculator

    # ===========================================
    # Goal sets
    # ===========================================

    async def calculate_goals(self, user_id: str, track_id: str) -> dict[GoalType, int]:
        """Goal totals a fresh goal set for this track would get right now."""
        track = get_track(track_id)
        if track is None:
            raise ValidationError(
                f"Unknown track: {track_id}", details={"track_id": track_id}
            )

        status_counts = await self.facts.status_counts(user_id, track_id)
        return calculate_goal_totals(
            practice_goal_counts(status_counts),
            count_unattempted(status_counts, track.size),
        )

    async def get_daily_goals(
        self, user_id: str, track_id: str, goal_date: date
    ) -> GoalSetSnapshot:
        """
        Return the day's goal set, creating it on first access.

        Concurrent first accesses are safe: only one insert wins and every
        caller reads back the same set.
        """
        try:
            snapshot = await self.store.get_goal_set(user_id, track_id, goal_date)
            if snapshot is not None:
                return snapshot

            totals = await self.calculate_goals(user_id, track_id)
            created = await self.store.create_goal_set(user_id, track_id, goal_date, totals)
            await self.db.commit()

            if created:
                summary = {goal_type.value: total for goal_type, total in totals.items()}
                logger.info(
                    f"Created daily goals for user {user_id} track {track_id} on {goal_date}: {summary}"
                )

            snapshot = await self.store.get_goal_set(user_id, track_id, goal_date)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to load daily goals for user {user_id} track {track_id}: {e}")
            raise StoreError("Failed to load daily goals") from e

        if snapshot is None:
            raise StoreError(
                f"Daily goals for track {track_id} on {goal_date} disappeared after creation"
            )
        return snapshot

    # ===========================================
    # Progress
    # ===========================================

    async def credit_fact(
        self,
        user_id: str,
        track_id: str,
        goal_date: date,
        goal_type: GoalType,
        fact_id: str,
    ) -> bool:
        """
        Count a fact toward a goal at most once per day.

        Learning credits only apply to an existing goal set; other goal types
        create the day's set if needed. Absent goal types, full goals, and
        already-counted facts are silent no-ops.

        Returns:
            True if the goal counter moved.
        """
        try:
            if goal_type == GoalType.LEARNING:
                snapshot = await self.store.get_goal_set(user_id, track_id, goal_date)
            else:
                snapshot = await self.get_daily_goals(user_id, track_id, goal_date)

            if snapshot is None or goal_type not in snapshot.goals:
                return False

            credited = await self.store.credit_fact(snapshot.id, goal_type, fact_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Failed to credit {goal_type.value} goal for fact {fact_id} "
                f"(user {user_id} track {track_id}): {e}"
            )
            raise StoreError("Failed to update daily goals") from e

        if not credited:
            logger.debug(
                f"Skipped {goal_type.value} credit for fact {fact_id}: already counted or goal full"
            )
            return False

        logger.info(
            f"Credited {goal_type.value} goal for user {user_id} track {track_id} fact {fact_id}"
        )
        if goal_type == GoalType.LEARNING:
            await self.signals.emit(
                GoalSignalType.LEARNING_GOAL_COMPLETED,
                user_id,
                track_id,
                goal_date,
                fact_id=fact_id,
            )
        await self.check_completion(user_id, track_id, goal_date)
        return True

    async def increment_goal(
        self,
        user_id: str,
        track_id: str,
        goal_date: date,
        goal_type: GoalType,
        increment: int = 1,
    ) -> GoalSetSnapshot:
        """
        Advance a goal that is not tied to individual facts.

        Raises:
            ValidationError: If the increment is not positive or the goal type
                is not part of today's set.

        Returns:
            The goal set after the increment (and any recalculation).
        """
        if increment < 1:
            raise ValidationError(
                "Increment must be a positive integer", details={"increment": increment}
            )

        snapshot = await self.get_daily_goals(user_id, track_id, goal_date)
        if goal_type not in snapshot.goals:
            raise ValidationError(
                f"Goal type {goal_type.value} is not part of today's goals for track {track_id}",
                details={
                    "goal_type": goal_type.value,
                    "available": [g.value for g in snapshot.goals],
                },
            )

        try:
            incremented = await self.store.increment_goal(snapshot.id, goal_type, increment)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Failed to increment {goal_type.value} goal for user {user_id} track {track_id}: {e}"
            )
            raise StoreError("Failed to update daily goals") from e

        if incremented:
            logger.info(
                f"Incremented {goal_type.value} goal by {increment} for user {user_id} track {track_id}"
            )
            await self.check_completion(user_id, track_id, goal_date)

        if goal_type == GoalType.ASSESSMENT:
            if self.recalculator is not None:
                self.recalculator.start_polling(user_id, track_id, goal_date)
            await self.recalculate_if_needed(user_id, track_id, goal_date)

        return await self.get_daily_goals(user_id, track_id, goal_date)

    async def check_completion(self, user_id: str, track_id: str, goal_date: date) -> None:
        """Flip completion flags that are newly reached and emit their signals."""
        try:
            snapshot = await self.store.get_goal_set(user_id, track_id, goal_date)
            if snapshot is None:
                return

            half_done, all_done = completion_milestones(snapshot.goals)
            flipped_half = half_done and await self.store.mark_half_completed(snapshot.id)
            flipped_all = all_done and await self.store.mark_all_completed(snapshot.id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to update goal completion for user {user_id} track {track_id}: {e}")
            raise StoreError("Failed to update daily goals") from e

        if flipped_half:
            logger.info(f"50% of daily goals reached for user {user_id} track {track_id} on {goal_date}")
            await self.signals.emit(GoalSignalType.HALF_COMPLETED, user_id, track_id, goal_date)
        if flipped_all:
            logger.info(f"All daily goals reached for user {user_id} track {track_id} on {goal_date}")
            await self.signals.emit(GoalSignalType.ALL_COMPLETED, user_id, track_id, goal_date)

    # ===========================================
    # Placement-phase recalculation
    # ===========================================

    async def recalculate_if_needed(
        self, user_id: str, track_id: str, goal_date: date
    ) -> bool:
        """
        Expand a placement-phase goal set with newly available practice goals.

        Only applies while the set plans several assessments and at least one
        is done. Existing goals and their progress are preserved; the
        assessment total is resized but never below what is already done.

        Returns:
            True if the set was expanded.
        """
        try:
            snapshot = await self.store.get_goal_set(user_id, track_id, goal_date)
            if snapshot is None or not in_placement_phase(snapshot.goals):
                return False

            counts = practice_goal_counts(await self.facts.status_counts(user_id, track_id))
            expansion = plan_expansion(snapshot.goals, counts)
            if expansion is None:
                return False

            applied = await self.store.apply_expansion(snapshot.id, expansion)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to recalculate goals for user {user_id} track {track_id}: {e}")
            raise StoreError("Failed to recalculate daily goals") from e

        if applied:
            logger.info(
                f"Recalculated goals for user {user_id} track {track_id}: added "
                f"{[goal_type.value for goal_type in expansion.added]}, "
                f"assessment total now {expansion.assessment_total}"
            )
        return applied

    # ===========================================
    # Reporting
    # ===========================================

    async def get_goals_summary(
        self,
        user_id: str,
        track_ids: Sequence[str],
        today: date,
        days: Optional[int] = None,
    ) -> list[DailyGoalsSummary]:
        """
        Per-day goal counts for the last ``days`` days, newest first.

        Days without a goal set are included with zero counts.
        """
        days = days or settings.GOALS_SUMMARY_DEFAULT_DAYS
        since = today - timedelta(days=days - 1)

        try:
            goal_sets = await self.store.list_goal_sets(user_id, track_ids, since)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load goal history for user {user_id}: {e}")
            raise StoreError("Failed to load goal history") from e

        totals: dict[date, list[int]] = {
            today - timedelta(days=offset): [0, 0] for offset in range(days)
        }
        for goal_set in goal_sets:
            bucket = totals.get(goal_set.goal_date)
            if bucket is None:
                continue
            bucket[0] += len(goal_set.goals)
            bucket[1] += sum(1 for counter in goal_set.goals.values() if counter.is_complete)

        return [
            DailyGoalsSummary(goal_date=day, goals_count=count, goals_achieved_count=achieved)
            for day, (count, achieved) in totals.items()
        ]
