"""
Centralized enum definitions for the application.

All enums are organized by domain:
- progress.py: Fact statuses, goal types, retention outcomes, goal signals
- api.py: Rate limit categories

Usage:
    from factmastery.enums import FactStatus, GoalType

    # Or import from specific module
    from factmastery.enums.progress import RetentionOutcome
"""

from factmastery.enums.api import RateLimitType
from factmastery.enums.progress import (
    FLUENCY_STAGES,
    FactStatus,
    GoalSignalType,
    GoalType,
    RetentionOutcome,
)

__all__ = [
    # Progress
    "FactStatus",
    "FLUENCY_STAGES",
    "GoalType",
    "RetentionOutcome",
    "GoalSignalType",
    # API
    "RateLimitType",
]
