"""
Daily Goal Calculator

Derives a day's goal set from how many facts sit in each mastery status.

Goal sizes:
- learning: facts in learning, capped at 4
- accuracy: facts in accuracyPractice, capped at 4. With only 1-3 such
  facts the pool widens to accuracyPractice + learning + notStarted; with
  none it falls back to the learning count
- fluency: facts in any fluency stage or accuracyPractice, capped at 8

Chaining (which practice goals appear together):
- any learning  → learning + accuracy (+ fluency if any)
- else accuracy → accuracy + fluency
- else fluency  → fluency

An assessment goal is always present. One assessment covers up to 60
questions: ceil(fluency / 60) when only fluency goals exist, otherwise
ceil(unattempted facts / 60), and never less than 1.

Usage:
    counts = practice_goal_counts(status_counts)
    totals = calculate_goal_totals(counts, unattempted=120)
    # {GoalType.LEARNING: 4, GoalType.ACCURACY: 4, GoalType.ASSESSMENT: 2}
"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional

from factmastery.config import settings
from factmastery.enums import FLUENCY_STAGES, FactStatus, GoalType


@dataclass(frozen=True)
class PracticeGoalCounts:
    """Goal sizes the current fact statuses support, before chaining."""

    learning: int = 0
    accuracy: int = 0
    fluency: int = 0

    @property
    def has_practice(self) -> bool:
        return self.learning > 0 or self.accuracy > 0 or self.fluency > 0


@dataclass
class GoalCounter:
    """Progress toward one goal type."""

    total: int
    completed: int = 0

    @property
    def is_complete(self) -> bool:
        return self.completed >= self.total


@dataclass(frozen=True)
class GoalExpansion:
    """Practice goals to add to a placement-phase goal set."""

    added: dict[GoalType, int]
    assessment_total: int


def practice_goal_counts(status_counts: Mapping[FactStatus, int]) -> PracticeGoalCounts:
    """Compute learning/accuracy/fluency goal sizes from per-status fact counts."""
    learning = status_counts.get(FactStatus.LEARNING, 0)
    accuracy_practice = status_counts.get(FactStatus.ACCURACY_PRACTICE, 0)
    not_started = status_counts.get(FactStatus.NOT_STARTED, 0)

    learning_goal = min(learning, settings.GOAL_CAP_LEARNING)

    if accuracy_practice >= settings.GOAL_CAP_ACCURACY:
        accuracy_goal = settings.GOAL_CAP_ACCURACY
    elif accuracy_practice > 0:
        accuracy_goal = min(
            accuracy_practice + learning + not_started, settings.GOAL_CAP_ACCURACY
        )
    else:
        accuracy_goal = min(learning, settings.GOAL_CAP_ACCURACY)

    fluency_pool = accuracy_practice + sum(
        count for status, count in status_counts.items() if status in FLUENCY_STAGES
    )
    fluency_goal = min(fluency_pool, settings.GOAL_CAP_FLUENCY)

    return PracticeGoalCounts(
        learning=learning_goal, accuracy=accuracy_goal, fluency=fluency_goal
    )


def count_unattempted(status_counts: Mapping[FactStatus, int], track_size: int) -> int:
    """Facts in the track with no stored row or still notStarted."""
    attempted = sum(
        count for status, count in status_counts.items()
        if status != FactStatus.NOT_STARTED
    )
    return max(track_size - attempted, 0)


def assessments_for(question_count: int) -> int:
    """Assessments needed to cover ``question_count`` facts (at least 1)."""
    return max(math.ceil(question_count / settings.ASSESSMENT_QUESTION_CAPACITY), 1)


def chain_practice_goals(counts: PracticeGoalCounts) -> dict[GoalType, int]:
    """Practice goals that appear together, per the chaining rule."""
    if counts.learning > 0:
        goals = {GoalType.LEARNING: counts.learning, GoalType.ACCURACY: counts.accuracy}
        if counts.fluency > 0:
            goals[GoalType.FLUENCY] = counts.fluency
        return goals
    if counts.accuracy > 0:
        return {GoalType.ACCURACY: counts.accuracy, GoalType.FLUENCY: counts.fluency}
    if counts.fluency > 0:
        return {GoalType.FLUENCY: counts.fluency}
    return {}


def calculate_goal_totals(
    counts: PracticeGoalCounts, unattempted: int
) -> dict[GoalType, int]:
    """
    Build a fresh day's goal totals.

    Args:
        counts: Practice goal sizes from ``practice_goal_counts``.
        unattempted: Facts in the track not yet attempted.

    Returns:
        Goal type → total. Always includes an assessment goal.
    """
    goals = chain_practice_goals(counts)

    if set(goals) == {GoalType.FLUENCY}:
        goals[GoalType.ASSESSMENT] = assessments_for(counts.fluency)
    else:
        goals[GoalType.ASSESSMENT] = assessments_for(unattempted)

    return goals


def in_placement_phase(goals: Mapping[GoalType, GoalCounter]) -> bool:
    """Several assessments planned and at least one already done."""
    assessment = goals.get(GoalType.ASSESSMENT)
    return assessment is not None and assessment.total > 1 and assessment.completed >= 1


def plan_expansion(
    goals: Mapping[GoalType, GoalCounter], counts: PracticeGoalCounts
) -> Optional[GoalExpansion]:
    """
    Decide how to expand a placement-phase goal set.

    Returns None unless the set is in the placement phase and the current
    fact statuses offer practice goals the set does not have yet. Existing
    goals are never replaced, so their completed counts are kept.
    """
    if not in_placement_phase(goals) or not counts.has_practice:
        return None

    if counts.learning > 0 and GoalType.LEARNING not in goals:
        chained = chain_practice_goals(counts)
    elif counts.accuracy > 0 and GoalType.ACCURACY not in goals:
        chained = chain_practice_goals(
            PracticeGoalCounts(accuracy=counts.accuracy, fluency=counts.fluency)
        )
    elif counts.fluency > 0 and GoalType.FLUENCY not in goals:
        chained = {GoalType.FLUENCY: counts.fluency}
    else:
        return None

    added = {
        goal_type: total
        for goal_type, total in chained.items()
        if goal_type not in goals and total > 0
    }
    if not added:
        return None

    assessment = goals[GoalType.ASSESSMENT]
    assessment_total = max(assessments_for(sum(added.values())), assessment.completed)
    return GoalExpansion(added=added, assessment_total=assessment_total)


def completion_milestones(goals: Mapping[GoalType, GoalCounter]) -> tuple[bool, bool]:
    """
    Return (half_completed, all_completed) for a goal set.

    Half means at least 50% of the goal types are fully complete.
    """
    if not goals:
        return False, False
    done = sum(1 for counter in goals.values() if counter.is_complete)
    return done / len(goals) >= 0.5, done == len(goals)
