"""
Fact Store

Async persistence for track progress and per-fact mastery state.

Writes are conditional:
- New facts are inserted with ``ON CONFLICT DO NOTHING`` on
  (user, track, fact); losing that race reports a conflict.
- Existing facts are updated with ``WHERE version = :expected`` and the
  version is bumped; a concurrent writer makes the update match no rows.

Callers re-read and re-apply their change when ``write_fact`` returns False.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from factmastery.db.models_progress import FactProgress, TrackProgress, UserProfile
from factmastery.enums import FactStatus
from factmastery.services.learning.state import ContextStats, FactState

logger = logging.getLogger(__name__)


def _row_to_state(row: FactProgress) -> FactState:
    return FactState(
        fact_id=row.fact_id,
        status=FactStatus(row.status),
        attempts=row.attempts or 0,
        correct=row.correct or 0,
        time_spent_ms=row.time_spent_ms or 0,
        today_stats={
            context: ContextStats.from_dict(stats)
            for context, stats in (row.today_stats or {}).items()
        },
        last_attempt_date=row.last_attempt_date,
        status_updated_at=row.status_updated_at,
        accuracy_streak=row.accuracy_streak,
        retention_day=row.retention_day,
        next_retention_date=row.next_retention_date,
        version=row.version,
    )


def _state_values(state: FactState) -> dict:
    return {
        "status": state.status.value,
        "attempts": state.attempts,
        "correct": state.correct,
        "time_spent_ms": state.time_spent_ms,
        "today_stats": {
            context: stats.to_dict() for context, stats in state.today_stats.items()
        },
        "last_attempt_date": state.last_attempt_date,
        "status_updated_at": state.status_updated_at,
        "accuracy_streak": state.accuracy_streak,
        "retention_day": state.retention_day,
        "next_retention_date": state.next_retention_date,
    }


class FactStore:
    """Reads and conditional writes for fact_progress and track_progress."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # Profiles and track records
    # ===========================================

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return await self.db.get(UserProfile, user_id)

    async def get_track_progress(
        self, user_id: str, track_id: str
    ) -> Optional[TrackProgress]:
        result = await self.db.execute(
            select(TrackProgress).where(
                TrackProgress.user_id == user_id,
                TrackProgress.track_id == track_id,
            ).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def ensure_track_progress(self, user_id: str, track_id: str) -> None:
        """Create the track record if it does not exist yet."""
        stmt = (
            pg_insert(TrackProgress)
            .values(user_id=user_id, track_id=track_id, overall_cqpm=0.0, accuracy_rate=0.0)
            .on_conflict_do_nothing(index_elements=["user_id", "track_id"])
        )
        await self.db.execute(stmt)

    async def update_track_metrics(
        self, user_id: str, track_id: str, overall_cqpm: float, accuracy_rate: float
    ) -> None:
        """Overwrite aggregate metrics (last writer wins)."""
        await self.db.execute(
            update(TrackProgress)
            .where(
                TrackProgress.user_id == user_id,
                TrackProgress.track_id == track_id,
            )
            .values(
                overall_cqpm=overall_cqpm,
                accuracy_rate=accuracy_rate,
                last_updated=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )

    # ===========================================
    # Facts
    # ===========================================

    async def get_fact(self, user_id: str, track_id: str, fact_id: str) -> FactState:
        """Return the stored state, or a fresh notStarted state if none exists."""
        result = await self.db.execute(
            select(FactProgress)
            .where(
                FactProgress.user_id == user_id,
                FactProgress.track_id == track_id,
                FactProgress.fact_id == fact_id,
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return FactState(fact_id=fact_id)
        return _row_to_state(row)

    async def list_facts(self, user_id: str, track_id: str) -> dict[str, FactState]:
        result = await self.db.execute(
            select(FactProgress)
            .where(
                FactProgress.user_id == user_id,
                FactProgress.track_id == track_id,
            )
            .order_by(FactProgress.id)
            .execution_options(populate_existing=True)
        )
        return {row.fact_id: _row_to_state(row) for row in result.scalars().all()}

    async def status_counts(self, user_id: str, track_id: str) -> dict[FactStatus, int]:
        """Number of stored facts per status for a track."""
        result = await self.db.execute(
            select(FactProgress.status, func.count(FactProgress.id))
            .where(
                FactProgress.user_id == user_id,
                FactProgress.track_id == track_id,
            )
            .group_by(FactProgress.status)
        )
        return {FactStatus(status): count for status, count in result.all()}

    async def lifetime_totals(self, user_id: str, track_id: str) -> tuple[int, int, int]:
        """Summed (attempts, correct, time_spent_ms) over a track's facts."""
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(FactProgress.attempts), 0),
                func.coalesce(func.sum(FactProgress.correct), 0),
                func.coalesce(func.sum(FactProgress.time_spent_ms), 0),
            ).where(
                FactProgress.user_id == user_id,
                FactProgress.track_id == track_id,
            )
        )
        attempts, correct, time_spent_ms = result.one()
        return int(attempts), int(correct), int(time_spent_ms)

    async def write_fact(self, user_id: str, track_id: str, state: FactState) -> bool:
        """
        Conditionally persist a fact.

        Returns:
            True if the write applied, False if another writer got there
            first (the caller should re-read and retry).
        """
        values = _state_values(state)

        if not state.is_persisted:
            stmt = (
                pg_insert(FactProgress)
                .values(
                    user_id=user_id,
                    track_id=track_id,
                    fact_id=state.fact_id,
                    version=1,
                    **values,
                )
                .on_conflict_do_nothing(
                    index_elements=["user_id", "track_id", "fact_id"]
                )
                .returning(FactProgress.id)
            )
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none() is not None

        result = await self.db.execute(
            update(FactProgress)
            .where(
                FactProgress.user_id == user_id,
                FactProgress.track_id == track_id,
                FactProgress.fact_id == state.fact_id,
                FactProgress.version == state.version,
            )
            .values(
                version=FactProgress.version + 1,
                updated_at=datetime.now(timezone.utc),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_track(self, user_id: str, track_id: str) -> int:
        """Remove the track record and all its fact rows. Returns facts removed."""
        result = await self.db.execute(
            delete(FactProgress).where(
                FactProgress.user_id == user_id,
                FactProgress.track_id == track_id,
            )
        )
        await self.db.execute(
            delete(TrackProgress).where(
                TrackProgress.user_id == user_id,
                TrackProgress.track_id == track_id,
            )
        )
        return result.rowcount or 0
