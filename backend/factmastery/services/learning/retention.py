"""
Retention Scheduler

Re-tests mastered facts on an expanding interval so that mastery is shown
to stick before a fact is considered automatic.

Schedule (days after mastery): 1, 3, 7, 16, 35, 75

On each attempt of a mastered fact:

- No schedule yet: start it (day 1, due tomorrow).
- Not due yet: nothing happens.
- Due: a retention test is graded from today's average response time and
  the fact's lifetime accuracy (including this attempt).
    * Pass (fast enough, accuracy >= 90%): move to the next interval, or
      graduate to ``automatic`` after the last one.
    * Correct but slow (accuracy >= 90%): keep the interval, re-test tomorrow.
    * Fail (accuracy < 90%): demote to the fluency stage today's speed earns
      and clear the schedule.

Usage:
    from factmastery.services.learning.retention import schedule_retention

    decision = schedule_retention(
        retention_day=3,
        next_retention_date=date(2024, 5, 1),
        today=date(2024, 5, 1),
        avg_response_time_sec=1.2,
        lifetime_accuracy=0.96,
        target_sec=1.5,
    )
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from factmastery.config import settings
from factmastery.enums import FactStatus, RetentionOutcome
from factmastery.services.learning.fluency import classify_fluency

logger = logging.getLogger(__name__)

RETENTION_SCHEDULE: tuple[int, ...] = (1, 3, 7, 16, 35, 75)


@dataclass(frozen=True)
class RetentionDecision:
    """
    Result of a retention check.

    ``status`` is the fact's status afterwards. ``retention_day`` and
    ``next_retention_date`` are both None once the fact leaves mastered.
    """

    outcome: RetentionOutcome
    status: FactStatus
    retention_day: Optional[int]
    next_retention_date: Optional[date]


def start_retention(today: date) -> tuple[int, date]:
    """Initial schedule for a fact that just became mastered."""
    return RETENTION_SCHEDULE[0], today + timedelta(days=1)


def _schedule_index(retention_day: Optional[int]) -> int:
    # Unknown or missing interval restarts at the first one
    if retention_day in RETENTION_SCHEDULE:
        return RETENTION_SCHEDULE.index(retention_day)
    return 0


def schedule_retention(
    retention_day: Optional[int],
    next_retention_date: Optional[date],
    today: date,
    avg_response_time_sec: Optional[float],
    lifetime_accuracy: float,
    target_sec: float,
) -> RetentionDecision:
    """
    Run the retention scheduler for one attempt on a mastered fact.

    Args:
        retention_day: Current interval, or None if never scheduled.
        next_retention_date: Day the next test is due, or None.
        today: Current practice day.
        avg_response_time_sec: Today's average seconds per answer.
        lifetime_accuracy: Fact accuracy 0.0-1.0 including this attempt.
        target_sec: Grade-level fluency target.

    Returns:
        RetentionDecision describing the new retention fields and status.
    """
    if next_retention_date is None:
        day, next_date = start_retention(today)
        return RetentionDecision(
            RetentionOutcome.SCHEDULED, FactStatus.MASTERED, day, next_date
        )

    if today < next_retention_date:
        return RetentionDecision(
            RetentionOutcome.NOT_DUE,
            FactStatus.MASTERED,
            retention_day,
            next_retention_date,
        )

    accurate = lifetime_accuracy >= settings.RETENTION_PASS_ACCURACY
    fast = avg_response_time_sec is not None and avg_response_time_sec <= target_sec

    if accurate and fast:
        index = _schedule_index(retention_day)
        current_day = RETENTION_SCHEDULE[index]

        if index == len(RETENTION_SCHEDULE) - 1:
            return RetentionDecision(
                RetentionOutcome.GRADUATED, FactStatus.AUTOMATIC, None, None
            )

        next_day = RETENTION_SCHEDULE[index + 1]
        return RetentionDecision(
            RetentionOutcome.PASSED,
            FactStatus.MASTERED,
            next_day,
            today + timedelta(days=next_day - current_day),
        )

    if accurate:
        return RetentionDecision(
            RetentionOutcome.RETRY,
            FactStatus.MASTERED,
            retention_day,
            today + timedelta(days=1),
        )

    # A fast-but-inaccurate fail classifies as mastered again; the schedule
    # is still cleared and restarts on the next attempt.
    demoted = classify_fluency(avg_response_time_sec, target_sec)
    return RetentionDecision(RetentionOutcome.FAILED, demoted, None, None)
