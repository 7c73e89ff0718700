"""
Daily Goal Services

Services for deriving, crediting, and completing daily practice goals.

Modules:
- calculator: Goal sizes and chaining from fact status counts
- store: Guarded persistence for goal sets, counters, and the credit ledger
- tracker: Goal lifecycle (creation, credits, increments, milestones)
- recalculation: Background placement-phase recalculation loops
- signals: Completion signal publishing

Usage:
    from factmastery.services.goals import DailyGoalsService, RedisSignalSink
"""

from factmastery.services.goals.calculator import (
    GoalCounter,
    GoalExpansion,
    PracticeGoalCounts,
    calculate_goal_totals,
    completion_milestones,
    plan_expansion,
    practice_goal_counts,
)
from factmastery.services.goals.recalculation import GoalRecalculationRegistry
from factmastery.services.goals.signals import GoalSignalSink, RedisSignalSink
from factmastery.services.goals.store import GoalSetSnapshot, GoalStore
from factmastery.services.goals.tracker import DailyGoalsService, DailyGoalsSummary

__all__ = [
    # Services
    "DailyGoalsService",
    "DailyGoalsSummary",
    "GoalRecalculationRegistry",
    # Persistence
    "GoalStore",
    "GoalSetSnapshot",
    # Signals
    "GoalSignalSink",
    "RedisSignalSink",
    # Calculator
    "GoalCounter",
    "GoalExpansion",
    "PracticeGoalCounts",
    "calculate_goal_totals",
    "completion_milestones",
    "plan_expansion",
    "practice_goal_counts",
]
