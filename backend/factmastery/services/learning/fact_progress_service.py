"""
Fact Progress Service

Service layer that applies attempt batches to a student's facts, persists
the results, and credits daily goals.

Usage:
    from factmastery.services.learning import FactProgressService

    service = FactProgressService(db_session, goals=daily_goals_service)

    progress = await service.submit_attempts(
        user_id="user-1",
        track_id="TRACK5",
        attempts={"FACT400": AttemptInput(attempts=3, correct=3, time_spent_ms=4200)},
        practice_date=date(2024, 5, 1),
    )

Batch semantics:
    - A pinned focus track on the student's profile overrides the requested track.
    - Every fact must belong to the resolved track, otherwise the whole
      batch is rejected before anything is written.
    - Facts are written one at a time, each in its own transaction with an
      optimistic version check; a fact that loses a race is re-read and
      re-evaluated.
    - Goal credits are issued only after the fact's write has committed.
    - Aggregate track metrics are recomputed last (last writer wins).
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from factmastery.config import settings
from factmastery.curriculum import ALL_TRACKS, get_fluency_target, get_track
from factmastery.db.models_progress import UserProfile
from factmastery.middleware.error_handling import (
    FactRangeError,
    FactWriteConflictError,
    StoreError,
    ValidationError,
)
from factmastery.services.learning.fact_store import FactStore
from factmastery.services.learning.progression import ProgressionResult, advance_fact
from factmastery.services.learning.state import AttemptInput, FactState

if TYPE_CHECKING:
    from factmastery.services.goals.recalculation import GoalRecalculationRegistry
    from factmastery.services.goals.tracker import DailyGoalsService

logger = logging.getLogger(__name__)


@dataclass
class TrackProgressView:
    """A student's progress on one track, as returned to callers."""

    track_id: str
    start_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    overall_cqpm: float = 0.0
    accuracy_rate: float = 0.0
    facts: dict[str, FactState] = field(default_factory=dict)


class FactProgressService:
    """
    Service for recording practice attempts against facts.

    Provides:
    - Focus-track resolution and fact range validation
    - Per-fact state machine evaluation with conditional writes
    - Goal crediting after each committed fact
    - Track progress reads and resets
    """

    def __init__(
        self,
        db: AsyncSession,
        goals: "DailyGoalsService",
        recalculator: Optional["GoalRecalculationRegistry"] = None,
    ):
        """
        Initialize the fact progress service.

        Args:
            db: Async database session
            goals: Daily goals service used to credit goals
            recalculator: Registry notified after each batch so waiting
                placement-phase recalculation loops re-check right away
        """
        self.db = db
        self.store = FactStore(db)
        self.goals = goals
        self.recalculator = recalculator

    # ===========================================
    # Validation
    # ===========================================

    async def resolve_track(
        self, user_id: str, track_id: str
    ) -> tuple[str, Optional[UserProfile]]:
        """
        Apply the student's focus-track override.

        Returns:
            (track id to use, profile or None)
        """
        try:
            profile = await self.store.get_profile(user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load profile for user {user_id}: {e}")
            raise StoreError("Failed to load user profile") from e

        resolved = track_id
        if profile is not None and profile.focus_track and profile.focus_track != ALL_TRACKS:
            resolved = profile.focus_track
            if resolved != track_id:
                logger.info(
                    f"Overriding track {track_id} with focus track {resolved} for user {user_id}"
                )
        return resolved, profile

    def validate_batch(self, track_id: str, fact_ids: Iterable[str]) -> None:
        """
        Reject the batch if any fact falls outside the track.

        Raises:
            ValidationError: Unknown track.
            FactRangeError: One or more facts outside the track's range.
        """
        track = get_track(track_id)
        if track is None:
            raise ValidationError(f"Unknown track: {track_id}", details={"track_id": track_id})

        invalid = [fact_id for fact_id in fact_ids if not track.contains(fact_id)]
        if invalid:
            logger.warning(
                f"Rejecting update - facts outside track range: {', '.join(invalid)} for track {track_id}"
            )
            raise FactRangeError(track_id, invalid)

    # ===========================================
    # Attempts
    # ===========================================

    async def submit_attempts(
        self,
        user_id: str,
        track_id: str,
        attempts: dict[str, AttemptInput],
        practice_date: date,
    ) -> TrackProgressView:
        """
        Apply an attempt batch.

        Args:
            user_id: Student id
            track_id: Requested track (may be overridden by the focus track)
            attempts: Fact id → attempt entry
            practice_date: Student's current practice day

        Returns:
            Updated progress for the resolved track.

        Raises:
            ValidationError / FactRangeError: Batch rejected, nothing written.
            StoreError: Persistence failed; facts already written stay written.
            FactWriteConflictError: A fact kept losing concurrent write races.
        """
        resolved_track, profile = await self.resolve_track(user_id, track_id)
        self.validate_batch(resolved_track, attempts.keys())

        target_sec = get_fluency_target(profile.grade if profile is not None else None)
        now = datetime.now(timezone.utc)

        try:
            await self.store.ensure_track_progress(user_id, resolved_track)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create track progress for user {user_id}: {e}")
            raise StoreError("Failed to save progress") from e

        for fact_id, attempt in attempts.items():
            if attempt.is_empty:
                continue

            result = await self._apply_attempt(
                user_id, resolved_track, fact_id, attempt, practice_date, now, target_sec
            )
            for goal_type in result.credits:
                await self.goals.credit_fact(
                    user_id, resolved_track, practice_date, goal_type, fact_id
                )

        await self._refresh_metrics(user_id, resolved_track)

        if self.recalculator is not None:
            self.recalculator.notify_facts_changed(user_id, resolved_track, practice_date)

        return await self.get_track_progress(user_id, resolved_track)

    async def _apply_attempt(
        self,
        user_id: str,
        track_id: str,
        fact_id: str,
        attempt: AttemptInput,
        practice_date: date,
        now: datetime,
        target_sec: float,
    ) -> ProgressionResult:
        max_retries = settings.FACT_WRITE_MAX_RETRIES

        for attempt_number in range(1, max_retries + 1):
            try:
                current = await self.store.get_fact(user_id, track_id, fact_id)
                result = advance_fact(current, attempt, practice_date, now, target_sec)
                written = await self.store.write_fact(user_id, track_id, result.state)
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to save fact {fact_id} for user {user_id} track {track_id}: {e}")
                raise StoreError(
                    f"Failed to save progress for fact {fact_id}", details={"fact_id": fact_id}
                ) from e

            if written:
                return result

            logger.warning(
                f"Concurrent update on fact {fact_id} for user {user_id}, "
                f"retrying ({attempt_number}/{max_retries})"
            )

        raise FactWriteConflictError(
            f"Fact {fact_id} was modified concurrently too many times",
            details={"fact_id": fact_id, "retries": max_retries},
        )

    async def _refresh_metrics(self, user_id: str, track_id: str) -> None:
        try:
            attempts, correct, time_spent_ms = await self.store.lifetime_totals(user_id, track_id)
            accuracy_rate = correct / attempts if attempts else 0.0
            minutes = time_spent_ms / 60000
            overall_cqpm = correct / minutes if minutes > 0 else 0.0

            await self.store.update_track_metrics(
                user_id, track_id, round(overall_cqpm, 2), round(accuracy_rate, 4)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to update track metrics for user {user_id} track {track_id}: {e}")
            raise StoreError("Failed to update track metrics") from e

    # ===========================================
    # Track progress
    # ===========================================

    async def get_track_progress(self, user_id: str, track_id: str) -> TrackProgressView:
        """Progress for a track; an empty view if the student has none yet."""
        try:
            record = await self.store.get_track_progress(user_id, track_id)
            if record is None:
                return TrackProgressView(track_id=track_id)
            facts = await self.store.list_facts(user_id, track_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load progress for user {user_id} track {track_id}: {e}")
            raise StoreError("Failed to load progress") from e

        return TrackProgressView(
            track_id=track_id,
            start_date=record.start_date,
            last_updated=record.last_updated,
            overall_cqpm=record.overall_cqpm,
            accuracy_rate=record.accuracy_rate,
            facts=facts,
        )

    async def reset_track_progress(self, user_id: str, track_id: str) -> int:
        """
        Delete a track's progress record and all of its facts.

        Returns:
            Number of fact rows removed.
        """
        if get_track(track_id) is None:
            raise ValidationError(f"Unknown track: {track_id}", details={"track_id": track_id})

        try:
            removed = await self.store.delete_track(user_id, track_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to reset progress for user {user_id} track {track_id}: {e}")
            raise StoreError("Failed to reset progress") from e

        logger.info(f"Reset progress for user {user_id} track {track_id}: {removed} facts removed")
        return removed
