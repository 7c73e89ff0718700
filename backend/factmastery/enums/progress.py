"""
Fact Progression Enums

Defines the fact mastery state machine, daily goal categories, retention
outcomes, and completion signal types.
"""

from enum import Enum
from typing import Optional


class FactStatus(str, Enum):
    """
    Mastery stage of a single fact.

    Values are the wire strings clients send and receive. The stages are
    totally ordered (see ``rank``):

        notStarted < learning < accuracyPractice < fluency6Practice
        < fluency3Practice < fluency2Practice < fluency1_5Practice
        < fluency1Practice < mastered < automatic

    Implicit transitions only move a fact up this order. Moving down happens
    only through an explicit client status or a failed retention test.
    """

    NOT_STARTED = "notStarted"
    LEARNING = "learning"
    ACCURACY_PRACTICE = "accuracyPractice"
    FLUENCY_6 = "fluency6Practice"
    FLUENCY_3 = "fluency3Practice"
    FLUENCY_2 = "fluency2Practice"
    FLUENCY_1_5 = "fluency1_5Practice"
    FLUENCY_1 = "fluency1Practice"
    MASTERED = "mastered"
    AUTOMATIC = "automatic"  # Terminal

    @property
    def rank(self) -> int:
        """Position in the mastery hierarchy (0 = notStarted)."""
        return _STATUS_RANK[self]

    @property
    def is_fluency(self) -> bool:
        """True for the five fluencyNPractice stages."""
        return self in FLUENCY_STAGES

    def is_above(self, other: "FactStatus") -> bool:
        return self.rank > other.rank


_STATUS_RANK: dict[FactStatus, int] = {
    status: index for index, status in enumerate(FactStatus)
}

FLUENCY_STAGES: frozenset[FactStatus] = frozenset(
    {
        FactStatus.FLUENCY_6,
        FactStatus.FLUENCY_3,
        FactStatus.FLUENCY_2,
        FactStatus.FLUENCY_1_5,
        FactStatus.FLUENCY_1,
    }
)


class GoalType(str, Enum):
    """
    Daily goal categories.

    Learning, accuracy, and fluency goals are credited per fact (each fact
    counts at most once per goal per day). Assessment goals count completed
    placement/progress assessments and are incremented directly.
    """

    LEARNING = "learning"
    ACCURACY = "accuracy"
    FLUENCY = "fluency"
    ASSESSMENT = "assessment"

    @classmethod
    def from_practice_context(cls, context: Optional[str]) -> Optional["GoalType"]:
        """
        Map a practice-context label to the goal it counts toward.

        Contexts are free-form labels such as ``fluency1`` or ``accuracy2``;
        only the prefix matters.
        """
        if not context:
            return None
        if context.startswith("fluency"):
            return cls.FLUENCY
        if context.startswith("accuracy"):
            return cls.ACCURACY
        return None


class RetentionOutcome(str, Enum):
    """
    Result of running the retention scheduler for a mastered fact.

    - SCHEDULED: first attempt after mastery, schedule initialized
    - NOT_DUE: next test date is still in the future
    - PASSED: fast and accurate, advanced to the next interval
    - GRADUATED: passed the final interval, fact becomes automatic
    - RETRY: accurate but too slow, re-test tomorrow
    - FAILED: accuracy below threshold, fact demoted to a fluency stage
    """

    SCHEDULED = "scheduled"
    NOT_DUE = "not_due"
    PASSED = "passed"
    GRADUATED = "graduated"
    RETRY = "retry"
    FAILED = "failed"


class GoalSignalType(str, Enum):
    """Completion signals published to the external notification consumer."""

    HALF_COMPLETED = "daily_goals_half_completed"
    ALL_COMPLETED = "daily_goals_completed"
    LEARNING_GOAL_COMPLETED = "learning_goal_completed"
