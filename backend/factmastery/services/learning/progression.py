"""
Fact Progression

The per-fact mastery state machine. Pure functions only: given a fact's
current state and one attempt entry, compute the new state and the daily
goals the attempt earns. Persistence and goal crediting are done by
FactProgressService.

State machine:
    notStarted → learning → accuracyPractice → fluency6 → fluency3
        → fluency2 → fluency1.5 → fluency1 → mastered → automatic

A *qualifying day* is one where every attempt on the fact today was correct
and there were at least three of them. Implicit transitions:

- accuracyPractice, qualifying day:
    * >= 6 correct today → fluency6Practice
    * streak already at 2 → stage earned by today's average speed
    * otherwise → streak + 1
- fluencyN, qualifying day: stage earned by today's speed, if higher
- mastered, any attempt: retention scheduler (see retention.py)
- brand-new fact answered correctly on its single first attempt:
  fluency6Practice (configurable)

An explicit status from the client is adopted as-is and may move a fact
down the hierarchy. The only other downward move is a failed retention test.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from factmastery.config import settings
from factmastery.enums import FactStatus, GoalType, RetentionOutcome
from factmastery.services.learning.fluency import classify_fluency
from factmastery.services.learning.retention import schedule_retention, start_retention
from factmastery.services.learning.state import (
    AttemptInput,
    ContextStats,
    FactState,
)

logger = logging.getLogger(__name__)


@dataclass
class ProgressionResult:
    """Outcome of applying one attempt entry to a fact."""

    state: FactState
    previous_status: FactStatus
    credits: list[GoalType] = field(default_factory=list)
    retention_outcome: Optional[RetentionOutcome] = None

    @property
    def status_changed(self) -> bool:
        return self.state.status != self.previous_status

    def add_credit(self, goal_type: GoalType) -> None:
        if goal_type not in self.credits:
            self.credits.append(goal_type)


def merge_attempt(
    state: FactState, attempt: AttemptInput, today: date, now: datetime
) -> None:
    """
    Fold an attempt into lifetime totals and today's per-context stats.

    Today's stats are discarded first when they belong to an earlier
    practice day.
    """
    if state.last_attempt_date != today:
        state.today_stats = {}

    if attempt.attempts <= 0:
        return

    stats = state.today_stats.setdefault(attempt.practice_context, ContextStats())
    stats.attempts += attempt.attempts
    stats.correct += attempt.correct
    stats.time_spent_ms += attempt.time_spent_ms
    stats.updated_at = now

    state.attempts += attempt.attempts
    state.correct += attempt.correct
    state.time_spent_ms += attempt.time_spent_ms
    state.last_attempt_date = today


def _goal_for_status(status: FactStatus) -> Optional[GoalType]:
    if status == FactStatus.ACCURACY_PRACTICE:
        return GoalType.ACCURACY
    if status.is_fluency:
        return GoalType.FLUENCY
    return None


def _set_status(state: FactState, status: FactStatus, now: datetime) -> None:
    if state.status != status:
        state.status = status
        state.status_updated_at = now


def _normalize_substructures(
    state: FactState, today: date, retention_outcome: Optional[RetentionOutcome]
) -> None:
    """Keep streak and retention fields consistent with the status."""
    if state.status == FactStatus.ACCURACY_PRACTICE:
        if state.accuracy_streak is None:
            state.accuracy_streak = 0
    else:
        state.accuracy_streak = None

    if state.status == FactStatus.MASTERED:
        if state.next_retention_date is None and retention_outcome != RetentionOutcome.FAILED:
            state.retention_day, state.next_retention_date = start_retention(today)
    else:
        state.retention_day = None
        state.next_retention_date = None


def _advance_accuracy(
    state: FactState,
    result: ProgressionResult,
    target_sec: float,
    now: datetime,
) -> None:
    totals = state.day_totals()

    if totals.correct >= settings.DIRECT_FLUENCY_PROMOTION_CORRECT:
        _set_status(state, FactStatus.FLUENCY_6, now)
    elif (state.accuracy_streak or 0) >= settings.ACCURACY_STREAK_REQUIRED:
        _set_status(state, classify_fluency(totals.avg_response_time_sec, target_sec), now)
    else:
        state.accuracy_streak = (state.accuracy_streak or 0) + 1

    if totals.correct >= settings.GOAL_CREDIT_MIN_CORRECT:
        result.add_credit(GoalType.ACCURACY)
        if state.status != FactStatus.ACCURACY_PRACTICE:
            result.add_credit(GoalType.FLUENCY)


def _advance_fluency(
    state: FactState,
    result: ProgressionResult,
    target_sec: float,
    now: datetime,
) -> None:
    totals = state.day_totals()
    earned = classify_fluency(totals.avg_response_time_sec, target_sec)

    if earned.is_above(state.status):
        _set_status(state, earned, now)
        if totals.correct >= settings.GOAL_CREDIT_MIN_CORRECT:
            result.add_credit(GoalType.FLUENCY)


def _advance_mastered(
    state: FactState,
    result: ProgressionResult,
    today: date,
    target_sec: float,
    now: datetime,
) -> None:
    decision = schedule_retention(
        retention_day=state.retention_day,
        next_retention_date=state.next_retention_date,
        today=today,
        avg_response_time_sec=state.day_totals().avg_response_time_sec,
        lifetime_accuracy=state.lifetime_accuracy,
        target_sec=target_sec,
    )
    result.retention_outcome = decision.outcome
    state.retention_day = decision.retention_day
    state.next_retention_date = decision.next_retention_date
    _set_status(state, decision.status, now)


def advance_fact(
    current: FactState,
    attempt: AttemptInput,
    today: date,
    now: datetime,
    target_sec: float,
) -> ProgressionResult:
    """
    Apply one attempt entry to a fact.

    Args:
        current: The fact's stored state. Not modified.
        attempt: Counters, practice context, and optional explicit status.
        today: Student's current practice day.
        now: Timestamp for status changes.
        target_sec: Student's grade-level fluency target.

    Returns:
        ProgressionResult with the new state and the goal types to credit.
    """
    state = copy.deepcopy(current)
    result = ProgressionResult(state=state, previous_status=current.status)
    is_new_fact = not current.is_persisted

    merge_attempt(state, attempt, today, now)

    if attempt.status is not None:
        state.status = attempt.status
        state.status_updated_at = now
        if (
            current.status == FactStatus.LEARNING
            and attempt.status == FactStatus.ACCURACY_PRACTICE
        ):
            result.add_credit(GoalType.LEARNING)

    elif not is_new_fact:
        min_attempts = settings.QUALIFYING_DAY_MIN_ATTEMPTS
        totals = state.day_totals()
        context = state.today_stats.get(attempt.practice_context, ContextStats())
        qualifying_day = totals.all_correct and totals.attempts >= min_attempts
        context_qualifies = context.all_correct and context.attempts >= min_attempts

        if qualifying_day or context_qualifies:
            goal_type = GoalType.from_practice_context(
                attempt.practice_context
            ) or _goal_for_status(current.status)
            if goal_type is not None:
                result.add_credit(goal_type)

        if current.status == FactStatus.ACCURACY_PRACTICE:
            if qualifying_day:
                _advance_accuracy(state, result, target_sec, now)
        elif current.status.is_fluency:
            if qualifying_day:
                _advance_fluency(state, result, target_sec, now)
        elif current.status == FactStatus.MASTERED:
            _advance_mastered(state, result, today, target_sec, now)

    elif (
        settings.FAST_TRACK_FIRST_CORRECT_ATTEMPT
        and attempt.attempts == 1
        and attempt.correct == 1
    ):
        _set_status(state, FactStatus.FLUENCY_6, now)

    _normalize_substructures(state, today, result.retention_outcome)

    if result.status_changed:
        logger.info(
            f"Fact {state.fact_id}: {result.previous_status.value} -> {state.status.value}"
        )

    return result
