"""
Fact State

In-memory representation of a fact's mastery state, independent of how it
is stored. The progression engine works on these dataclasses; the fact
store converts them to and from ``fact_progress`` rows.

Per-day statistics are grouped by practice context (a free-form label such
as ``default``, ``accuracy2`` or ``fluency1``) so the engine can judge both
the whole day and the context an attempt came from.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from factmastery.enums import FactStatus

DEFAULT_PRACTICE_CONTEXT = "default"


@dataclass
class ContextStats:
    """Today's counters for one practice context."""

    attempts: int = 0
    correct: int = 0
    time_spent_ms: int = 0
    updated_at: Optional[datetime] = None

    @property
    def avg_response_time_sec(self) -> Optional[float]:
        if self.attempts <= 0:
            return None
        return self.time_spent_ms / self.attempts / 1000

    @property
    def all_correct(self) -> bool:
        return self.attempts > 0 and self.correct == self.attempts

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempts": self.attempts,
            "correct": self.correct,
            "time_spent_ms": self.time_spent_ms,
            "avg_response_time_sec": self.avg_response_time_sec,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContextStats":
        updated_at = data.get("updated_at")
        return cls(
            attempts=int(data.get("attempts") or 0),
            correct=int(data.get("correct") or 0),
            time_spent_ms=int(data.get("time_spent_ms") or 0),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )


@dataclass
class DayTotals:
    """Today's counters summed across all practice contexts."""

    attempts: int = 0
    correct: int = 0
    time_spent_ms: int = 0

    @property
    def avg_response_time_sec(self) -> Optional[float]:
        if self.attempts <= 0:
            return None
        return self.time_spent_ms / self.attempts / 1000

    @property
    def all_correct(self) -> bool:
        return self.attempts > 0 and self.correct == self.attempts


@dataclass
class FactState:
    """
    Mastery state of a single fact.

    ``accuracy_streak`` is only meaningful while the fact is in
    accuracyPractice; ``retention_day`` and ``next_retention_date`` only
    while it is mastered. ``today_stats`` only holds stats for
    ``last_attempt_date``.
    """

    fact_id: str
    status: FactStatus = FactStatus.NOT_STARTED
    attempts: int = 0
    correct: int = 0
    time_spent_ms: int = 0
    today_stats: dict[str, ContextStats] = field(default_factory=dict)
    last_attempt_date: Optional[date] = None
    status_updated_at: Optional[datetime] = None
    accuracy_streak: Optional[int] = None
    retention_day: Optional[int] = None
    next_retention_date: Optional[date] = None
    version: int = 0  # 0 = not yet persisted

    @property
    def is_persisted(self) -> bool:
        return self.version > 0

    @property
    def lifetime_accuracy(self) -> float:
        if self.attempts <= 0:
            return 0.0
        return self.correct / self.attempts

    def day_totals(self) -> DayTotals:
        totals = DayTotals()
        for stats in self.today_stats.values():
            totals.attempts += stats.attempts
            totals.correct += stats.correct
            totals.time_spent_ms += stats.time_spent_ms
        return totals


@dataclass
class AttemptInput:
    """
    One fact's entry in an attempt batch.

    ``status`` is an explicit override from the client; when set it is
    adopted unconditionally.
    """

    attempts: int = 0
    correct: int = 0
    time_spent_ms: int = 0
    practice_context: str = DEFAULT_PRACTICE_CONTEXT
    status: Optional[FactStatus] = None

    @property
    def is_empty(self) -> bool:
        return self.attempts == 0 and self.status is None
