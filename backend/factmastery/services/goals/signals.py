"""
Goal Completion Signals

Publishes goal milestones (50% of goals, all goals, a learning goal credit)
to the external notification/analytics consumer via a Redis list.

Publishing is fire-and-forget: a Redis failure is logged and never fails
the request that reached the milestone.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional, Protocol

from redis.exceptions import RedisError

from factmastery.db.redis import SignalQueue
from factmastery.enums import GoalSignalType

logger = logging.getLogger(__name__)


class GoalSignalSink(Protocol):
    """Anything that accepts goal completion signals."""

    async def emit(
        self,
        signal_type: GoalSignalType,
        user_id: str,
        track_id: str,
        goal_date: date,
        fact_id: Optional[str] = None,
    ) -> None: ...


class RedisSignalSink:
    """Pushes signals onto the Redis signal queue."""

    def __init__(self, queue: Optional[SignalQueue] = None):
        self.queue = queue or SignalQueue()

    async def emit(
        self,
        signal_type: GoalSignalType,
        user_id: str,
        track_id: str,
        goal_date: date,
        fact_id: Optional[str] = None,
    ) -> None:
        payload = {
            "user_id": user_id,
            "track_id": track_id,
            "date": goal_date.isoformat(),
            "emitted_at": datetime.now(timezone.utc).isoformat(),
        }
        if fact_id is not None:
            payload["fact_id"] = fact_id

        try:
            await self.queue.publish(signal_type.value, payload)
            logger.info(
                f"Signal {signal_type.value} sent for user {user_id} track {track_id} date {goal_date}"
            )
        except (RedisError, OSError) as e:
            logger.warning(
                f"Failed to publish {signal_type.value} for user {user_id} track {track_id}: {e}"
            )
