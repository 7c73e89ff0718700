"""
Goal Recalculation Registry

Keeps placement-phase goal sets in step with fact statuses that change
after an assessment is recorded.

When a student finishes one of several planned assessments, the facts it
placed arrive through separate attempt batches. The registry schedules one
bounded interval job per (user, track, date) on an in-process APScheduler
that re-checks fact status counts and expands the goal set once practice
goals become available.

A job runs on its interval or immediately when the progression engine
reports that facts changed for that user and track. It is removed after the
first successful expansion or after the configured number of checks.

Execution Context:
    The scheduler runs IN-PROCESS in FastAPI's event loop. main.lifespan
    starts it on startup and shuts it down (dropping pending jobs) on exit.
    Jobs live in memory only; a restart forgets them, and the immediate
    recalculation done on every assessment increment still applies.

Usage:
    registry = GoalRecalculationRegistry(async_session_maker, signals)
    registry.start()
    registry.start_polling("user-1", "TRACK5", date.today())
    registry.notify_facts_changed("user-1", "TRACK5", date.today())
    registry.shutdown()
"""

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from factmastery.config import settings
from factmastery.middleware.error_handling import StoreError
from factmastery.services.goals.calculator import PracticeGoalCounts, practice_goal_counts
from factmastery.services.goals.signals import GoalSignalSink
from factmastery.services.goals.tracker import DailyGoalsService
from factmastery.services.learning.fact_store import FactStore

logger = logging.getLogger(__name__)


def recalculation_job_id(user_id: str, track_id: str, goal_date: date) -> str:
    return f"goal-recalc:{user_id}:{track_id}:{goal_date.isoformat()}"


class GoalRecalculationRegistry:
    """
    Per-process owner of placement-phase recalculation jobs.

    Each check opens its own database session from ``session_factory``; the
    request that scheduled the job may be long finished.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        signals: GoalSignalSink,
        interval_sec: Optional[float] = None,
        max_checks: Optional[int] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.session_factory = session_factory
        self.signals = signals
        self.interval_sec = (
            interval_sec if interval_sec is not None else settings.GOAL_RECALC_INTERVAL_SEC
        )
        self.max_checks = max_checks if max_checks is not None else settings.GOAL_RECALC_MAX_CHECKS
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._checks: dict[str, int] = {}

    # ===========================================
    # Scheduler lifecycle
    # ===========================================

    def start(self) -> None:
        """Start the scheduler. Must be called from within the running event loop."""
        if self.scheduler.running:
            logger.warning("Goal recalculation scheduler already running")
            return

        self.scheduler.start()
        logger.info("Goal recalculation scheduler started")

    def shutdown(self) -> None:
        """Stop the scheduler and drop every pending recalculation job."""
        if not self.scheduler.running:
            return

        self.scheduler.remove_all_jobs()
        self.scheduler.shutdown(wait=False)
        self._checks.clear()
        logger.info("Goal recalculation scheduler stopped")

    # ===========================================
    # Jobs
    # ===========================================

    def is_polling(self, user_id: str, track_id: str, goal_date: date) -> bool:
        job_id = recalculation_job_id(user_id, track_id, goal_date)
        return self.scheduler.get_job(job_id) is not None

    def start_polling(self, user_id: str, track_id: str, goal_date: date) -> bool:
        """
        Schedule a recalculation job unless one already exists for the key.

        Returns:
            True if a new job was scheduled.
        """
        job_id = recalculation_job_id(user_id, track_id, goal_date)
        if self.scheduler.get_job(job_id) is not None:
            return False

        self._checks[job_id] = 0
        self.scheduler.add_job(
            self.run_check,
            IntervalTrigger(seconds=self.interval_sec),
            args=[user_id, track_id, goal_date],
            id=job_id,
            name=f"Goal recalculation {user_id}/{track_id}/{goal_date}",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

        logger.info(f"Starting goal recalculation polling for user {user_id} track {track_id}")
        return True

    def notify_facts_changed(self, user_id: str, track_id: str, goal_date: date) -> None:
        """Run the job for this key, if any, right away instead of on its interval."""
        job = self.scheduler.get_job(recalculation_job_id(user_id, track_id, goal_date))
        if job is not None:
            job.modify(next_run_time=datetime.now(timezone.utc))

    async def run_check(self, user_id: str, track_id: str, goal_date: date) -> bool:
        """
        One scheduled check.

        Recalculates whenever practice goals are available; the recalculation
        itself only expands the set if it lacks them. The job is removed after
        an expansion, a database failure, or the last allowed check.

        Returns:
            True if the goal set was expanded.
        """
        job_id = recalculation_job_id(user_id, track_id, goal_date)
        self._checks[job_id] = self._checks.get(job_id, 0) + 1

        try:
            counts = await self._current_counts(user_id, track_id)
            if counts.has_practice and await self._recalculate(user_id, track_id, goal_date):
                logger.info(f"Goal recalculation completed for user {user_id} track {track_id}")
                self._stop(job_id)
                return True
        except (SQLAlchemyError, StoreError) as e:
            logger.error(f"Error during goal recalculation polling for user {user_id}: {e}")
            self._stop(job_id)
            return False

        if self._checks[job_id] >= self.max_checks:
            logger.info(
                f"Goal recalculation polling stopped (max checks) for user {user_id} track {track_id}"
            )
            self._stop(job_id)
        return False

    def _stop(self, job_id: str) -> None:
        self._checks.pop(job_id, None)
        if self.scheduler.get_job(job_id) is not None:
            self.scheduler.remove_job(job_id)

    async def _current_counts(self, user_id: str, track_id: str) -> PracticeGoalCounts:
        async with self.session_factory() as session:
            status_counts = await FactStore(session).status_counts(user_id, track_id)
        return practice_goal_counts(status_counts)

    async def _recalculate(self, user_id: str, track_id: str, goal_date: date) -> bool:
        async with self.session_factory() as session:
            service = DailyGoalsService(session, signals=self.signals)
            return await service.recalculate_if_needed(user_id, track_id, goal_date)
