"""
Daily Goal Store

Async persistence for daily goal sets, their counters, and the credit ledger.

Every mutation is a guarded statement so concurrent and duplicate requests
cannot double count:

- Goal sets are created with ``ON CONFLICT DO NOTHING`` on
  (user, track, date); the loser simply re-reads.
- A fact credit inserts a ledger row and bumps the counter with
  ``completed + 1 <= total`` inside one savepoint. If either guard fails the
  savepoint is rolled back and nothing changes.
- Completion flags are flipped with ``WHERE flag = false`` so exactly one
  caller observes the transition.
- Placement-phase expansion locks the set row before adding goals.

Reads return plain snapshots built from column selects so callers never see
stale ORM state after a guarded update.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import and_, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from factmastery.db.models_goals import DailyGoal, DailyGoalCredit, DailyGoalSet
from factmastery.enums import GoalType
from factmastery.services.goals.calculator import GoalCounter, GoalExpansion

logger = logging.getLogger(__name__)


@dataclass
class GoalSetSnapshot:
    """Point-in-time view of a daily goal set."""

    id: int
    user_id: str
    track_id: str
    goal_date: date
    half_completed: bool = False
    all_completed: bool = False
    goals: dict[GoalType, GoalCounter] = field(default_factory=dict)


class GoalStore:
    """Reads and guarded writes for daily goal sets."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # Reads
    # ===========================================

    async def _load_counters(
        self, set_ids: Sequence[int]
    ) -> dict[int, dict[GoalType, GoalCounter]]:
        counters: dict[int, dict[GoalType, GoalCounter]] = {set_id: {} for set_id in set_ids}
        if not set_ids:
            return counters

        result = await self.db.execute(
            select(
                DailyGoal.goal_set_id,
                DailyGoal.goal_type,
                DailyGoal.total,
                DailyGoal.completed,
            )
            .where(DailyGoal.goal_set_id.in_(set_ids))
            .order_by(DailyGoal.id)
        )
        for set_id, goal_type, total, completed in result.all():
            counters[set_id][GoalType(goal_type)] = GoalCounter(
                total=total, completed=completed
            )
        return counters

    async def get_goal_set(
        self, user_id: str, track_id: str, goal_date: date
    ) -> Optional[GoalSetSnapshot]:
        result = await self.db.execute(
            select(
                DailyGoalSet.id,
                DailyGoalSet.half_completed,
                DailyGoalSet.all_completed,
            ).where(
                DailyGoalSet.user_id == user_id,
                DailyGoalSet.track_id == track_id,
                DailyGoalSet.goal_date == goal_date,
            )
        )
        row = result.one_or_none()
        if row is None:
            return None

        set_id, half_completed, all_completed = row
        counters = await self._load_counters([set_id])
        return GoalSetSnapshot(
            id=set_id,
            user_id=user_id,
            track_id=track_id,
            goal_date=goal_date,
            half_completed=half_completed,
            all_completed=all_completed,
            goals=counters[set_id],
        )

    async def list_goal_sets(
        self, user_id: str, track_ids: Sequence[str], since: date
    ) -> list[GoalSetSnapshot]:
        """Goal sets on or after ``since`` for the given tracks, newest first."""
        result = await self.db.execute(
            select(
                DailyGoalSet.id,
                DailyGoalSet.track_id,
                DailyGoalSet.goal_date,
                DailyGoalSet.half_completed,
                DailyGoalSet.all_completed,
            )
            .where(
                DailyGoalSet.user_id == user_id,
                DailyGoalSet.track_id.in_(list(track_ids)),
                DailyGoalSet.goal_date >= since,
            )
            .order_by(DailyGoalSet.goal_date.desc(), DailyGoalSet.track_id)
        )
        rows = result.all()
        counters = await self._load_counters([row[0] for row in rows])
        return [
            GoalSetSnapshot(
                id=set_id,
                user_id=user_id,
                track_id=track_id,
                goal_date=goal_date,
                half_completed=half_completed,
                all_completed=all_completed,
                goals=counters[set_id],
            )
            for set_id, track_id, goal_date, half_completed, all_completed in rows
        ]

    # ===========================================
    # Writes
    # ===========================================

    async def create_goal_set(
        self,
        user_id: str,
        track_id: str,
        goal_date: date,
        totals: dict[GoalType, int],
    ) -> bool:
        """
        Insert a goal set with its counters.

        Returns:
            False if another request created the set first.
        """
        result = await self.db.execute(
            pg_insert(DailyGoalSet)
            .values(
                user_id=user_id,
                track_id=track_id,
                goal_date=goal_date,
                half_completed=False,
                all_completed=False,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "track_id", "goal_date"])
            .returning(DailyGoalSet.id)
        )
        set_id = result.scalar_one_or_none()
        if set_id is None:
            return False

        await self.db.execute(
            pg_insert(DailyGoal).values(
                [
                    {
                        "goal_set_id": set_id,
                        "goal_type": goal_type.value,
                        "total": total,
                        "completed": 0,
                    }
                    for goal_type, total in totals.items()
                ]
            )
        )
        return True

    async def _touch(self, set_id: int) -> None:
        await self.db.execute(
            update(DailyGoalSet)
            .where(DailyGoalSet.id == set_id)
            .values(updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )

    async def credit_fact(self, set_id: int, goal_type: GoalType, fact_id: str) -> bool:
        """
        Count a fact toward a goal at most once.

        Returns:
            True if the counter moved; False if the fact was already
            counted, the goal is full, or the goal type is absent.
        """
        savepoint = await self.db.begin_nested()
        try:
            ledger = await self.db.execute(
                pg_insert(DailyGoalCredit)
                .values(goal_set_id=set_id, goal_type=goal_type.value, fact_id=fact_id)
                .on_conflict_do_nothing(
                    index_elements=["goal_set_id", "goal_type", "fact_id"]
                )
                .returning(DailyGoalCredit.id)
            )
            if ledger.scalar_one_or_none() is None:
                await savepoint.rollback()
                return False

            bumped = await self.db.execute(
                update(DailyGoal)
                .where(
                    DailyGoal.goal_set_id == set_id,
                    DailyGoal.goal_type == goal_type.value,
                    DailyGoal.completed + 1 <= DailyGoal.total,
                )
                .values(completed=DailyGoal.completed + 1)
                .execution_options(synchronize_session=False)
            )
            if bumped.rowcount != 1:
                await savepoint.rollback()
                return False

            await self._touch(set_id)
            await savepoint.commit()
            return True
        except Exception:
            await savepoint.rollback()
            raise

    async def increment_goal(self, set_id: int, goal_type: GoalType, amount: int) -> bool:
        """
        Add ``amount`` to a goal without passing its total.

        Returns:
            False if the goal was already full or is absent.
        """
        result = await self.db.execute(
            update(DailyGoal)
            .where(
                DailyGoal.goal_set_id == set_id,
                DailyGoal.goal_type == goal_type.value,
                DailyGoal.completed < DailyGoal.total,
            )
            .values(completed=func.least(DailyGoal.completed + amount, DailyGoal.total))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self._touch(set_id)
        return True

    async def mark_half_completed(self, set_id: int) -> bool:
        """Flip half_completed once. Returns True only for the caller that flipped it."""
        result = await self.db.execute(
            update(DailyGoalSet)
            .where(DailyGoalSet.id == set_id, DailyGoalSet.half_completed.is_(False))
            .values(half_completed=True, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_all_completed(self, set_id: int) -> bool:
        """Flip all_completed once. Returns True only for the caller that flipped it."""
        result = await self.db.execute(
            update(DailyGoalSet)
            .where(DailyGoalSet.id == set_id, DailyGoalSet.all_completed.is_(False))
            .values(all_completed=True, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def apply_expansion(self, set_id: int, expansion: GoalExpansion) -> bool:
        """
        Add placement-phase practice goals and resize the assessment goal.

        The set row is locked first so concurrent expanders serialize; goal
        types that already exist are left untouched.

        Returns:
            True if at least one goal was added.
        """
        await self.db.execute(
            select(DailyGoalSet.id).where(DailyGoalSet.id == set_id).with_for_update()
        )

        inserted = await self.db.execute(
            pg_insert(DailyGoal)
            .values(
                [
                    {
                        "goal_set_id": set_id,
                        "goal_type": goal_type.value,
                        "total": total,
                        "completed": 0,
                    }
                    for goal_type, total in expansion.added.items()
                ]
            )
            .on_conflict_do_nothing(index_elements=["goal_set_id", "goal_type"])
            .returning(DailyGoal.id)
        )
        if not inserted.scalars().all():
            return False

        await self.db.execute(
            update(DailyGoal)
            .where(
                and_(
                    DailyGoal.goal_set_id == set_id,
                    DailyGoal.goal_type == GoalType.ASSESSMENT.value,
                )
            )
            .values(total=func.greatest(expansion.assessment_total, DailyGoal.completed))
            .execution_options(synchronize_session=False)
        )
        await self._touch(set_id)
        return True
