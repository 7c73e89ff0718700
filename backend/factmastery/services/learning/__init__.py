"""
Fact Learning Services

Services for the fact mastery state machine.

Modules:
- state: FactState and attempt dataclasses
- fluency: Response time → fluency stage classifier
- retention: Spaced retention scheduler for mastered facts
- progression: Pure per-fact state machine
- fact_store: Conditional persistence for fact and track rows
- fact_progress_service: Attempt batch orchestration

Usage:
    from factmastery.services.learning import FactProgressService, AttemptInput
"""

from factmastery.services.learning.fact_progress_service import (
    FactProgressService,
    TrackProgressView,
)
from factmastery.services.learning.fact_store import FactStore
from factmastery.services.learning.fluency import classify_fluency
from factmastery.services.learning.progression import (
    ProgressionResult,
    advance_fact,
    merge_attempt,
)
from factmastery.services.learning.retention import (
    RETENTION_SCHEDULE,
    RetentionDecision,
    schedule_retention,
)
from factmastery.services.learning.state import (
    DEFAULT_PRACTICE_CONTEXT,
    AttemptInput,
    ContextStats,
    FactState,
)

__all__ = [
    # Orchestration
    "FactProgressService",
    "TrackProgressView",
    "FactStore",
    # State machine
    "advance_fact",
    "merge_attempt",
    "ProgressionResult",
    "classify_fluency",
    "schedule_retention",
    "RetentionDecision",
    "RETENTION_SCHEDULE",
    # State
    "AttemptInput",
    "ContextStats",
    "FactState",
    "DEFAULT_PRACTICE_CONTEXT",
]
