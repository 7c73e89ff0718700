"""
Unit tests for the daily goal calculator.

Tests goal sizing from fact status counts, goal chaining, assessment
planning, placement-phase expansion, and completion milestones.
"""

import pytest

from factmastery.enums import FactStatus, GoalType
from factmastery.services.goals.calculator import (
    GoalCounter,
    PracticeGoalCounts,
    assessments_for,
    calculate_goal_totals,
    chain_practice_goals,
    completion_milestones,
    count_unattempted,
    in_placement_phase,
    plan_expansion,
    practice_goal_counts,
)


class TestPracticeGoalCounts:
    """Tests for practice_goal_counts."""

    def test_no_facts(self):
        counts = practice_goal_counts({})

        assert counts == PracticeGoalCounts(0, 0, 0)
        assert not counts.has_practice

    def test_learning_caps_and_feeds_accuracy(self):
        counts = practice_goal_counts({FactStatus.LEARNING: 6})

        assert counts.learning == 4
        assert counts.accuracy == 4
        assert counts.fluency == 0

    def test_few_accuracy_facts_widen_pool(self):
        counts = practice_goal_counts(
            {
                FactStatus.ACCURACY_PRACTICE: 2,
                FactStatus.LEARNING: 1,
                FactStatus.NOT_STARTED: 0,
            }
        )

        assert counts.accuracy == 3
        assert counts.learning == 1

    def test_not_started_counts_toward_widened_pool(self):
        counts = practice_goal_counts(
            {FactStatus.ACCURACY_PRACTICE: 1, FactStatus.NOT_STARTED: 10}
        )

        assert counts.accuracy == 4

    def test_many_accuracy_facts_capped(self):
        counts = practice_goal_counts({FactStatus.ACCURACY_PRACTICE: 9})

        assert counts.accuracy == 4
        assert counts.fluency == 8

    def test_fluency_pool_includes_all_stages_and_accuracy(self):
        counts = practice_goal_counts(
            {
                FactStatus.ACCURACY_PRACTICE: 1,
                FactStatus.FLUENCY_6: 1,
                FactStatus.FLUENCY_1: 1,
                FactStatus.MASTERED: 5,
            }
        )

        assert counts.fluency == 3

    def test_fluency_capped(self):
        counts = practice_goal_counts({FactStatus.FLUENCY_2: 20})

        assert counts.fluency == 8
        assert counts.learning == 0
        assert counts.accuracy == 0


class TestChainPracticeGoals:
    def test_learning_chains_accuracy_and_fluency(self):
        goals = chain_practice_goals(PracticeGoalCounts(learning=2, accuracy=3, fluency=1))

        assert goals == {GoalType.LEARNING: 2, GoalType.ACCURACY: 3, GoalType.FLUENCY: 1}

    def test_learning_without_fluency(self):
        goals = chain_practice_goals(PracticeGoalCounts(learning=2, accuracy=2))

        assert set(goals) == {GoalType.LEARNING, GoalType.ACCURACY}

    def test_accuracy_chains_fluency(self):
        goals = chain_practice_goals(PracticeGoalCounts(accuracy=3, fluency=5))

        assert goals == {GoalType.ACCURACY: 3, GoalType.FLUENCY: 5}

    def test_fluency_alone(self):
        assert chain_practice_goals(PracticeGoalCounts(fluency=4)) == {GoalType.FLUENCY: 4}

    def test_nothing(self):
        assert chain_practice_goals(PracticeGoalCounts()) == {}


class TestAssessments:
    @pytest.mark.parametrize(
        "questions,expected", [(0, 1), (1, 1), (60, 1), (61, 2), (144, 3)]
    )
    def test_assessments_for(self, questions, expected):
        assert assessments_for(questions) == expected

    def test_count_unattempted(self):
        status_counts = {FactStatus.NOT_STARTED: 5, FactStatus.LEARNING: 10}

        assert count_unattempted(status_counts, track_size=144) == 134

    def test_count_unattempted_never_negative(self):
        assert count_unattempted({FactStatus.MASTERED: 200}, track_size=144) == 0


class TestCalculateGoalTotals:
    """Tests for a fresh day's goal set."""

    def test_new_student_gets_only_assessments(self):
        totals = calculate_goal_totals(PracticeGoalCounts(), unattempted=144)

        assert totals == {GoalType.ASSESSMENT: 3}

    def test_fluency_only_sizes_assessment_by_fluency(self):
        totals = calculate_goal_totals(PracticeGoalCounts(fluency=8), unattempted=130)

        assert totals == {GoalType.FLUENCY: 8, GoalType.ASSESSMENT: 1}

    def test_practice_goals_size_assessment_by_unattempted(self):
        totals = calculate_goal_totals(
            PracticeGoalCounts(learning=2, accuracy=2), unattempted=130
        )

        assert totals == {
            GoalType.LEARNING: 2,
            GoalType.ACCURACY: 2,
            GoalType.ASSESSMENT: 3,
        }

    def test_always_at_least_one_assessment(self):
        totals = calculate_goal_totals(PracticeGoalCounts(accuracy=1, fluency=1), unattempted=0)

        assert totals[GoalType.ASSESSMENT] == 1


class TestPlacementPhase:
    def test_in_placement_phase(self):
        assert in_placement_phase({GoalType.ASSESSMENT: GoalCounter(total=2, completed=1)})

    def test_single_assessment_is_not_placement(self):
        assert not in_placement_phase({GoalType.ASSESSMENT: GoalCounter(total=1, completed=1)})

    def test_no_assessment_done_is_not_placement(self):
        assert not in_placement_phase({GoalType.ASSESSMENT: GoalCounter(total=3, completed=0)})

    def test_no_assessment_goal(self):
        assert not in_placement_phase({GoalType.FLUENCY: GoalCounter(total=3)})


class TestPlanExpansion:
    """Tests for placement-phase goal expansion."""

    def test_learning_facts_add_chained_goals(self):
        goals = {GoalType.ASSESSMENT: GoalCounter(total=2, completed=1)}
        counts = practice_goal_counts({FactStatus.LEARNING: 5})

        expansion = plan_expansion(goals, counts)

        assert expansion.added == {GoalType.LEARNING: 4, GoalType.ACCURACY: 4}
        assert expansion.assessment_total == 1

    def test_assessment_total_never_below_completed(self):
        goals = {GoalType.ASSESSMENT: GoalCounter(total=3, completed=2)}
        counts = PracticeGoalCounts(fluency=5)

        expansion = plan_expansion(goals, counts)

        assert expansion.added == {GoalType.FLUENCY: 5}
        assert expansion.assessment_total == 2

    def test_existing_goals_are_kept(self):
        goals = {
            GoalType.LEARNING: GoalCounter(total=4, completed=2),
            GoalType.ACCURACY: GoalCounter(total=4, completed=1),
            GoalType.ASSESSMENT: GoalCounter(total=3, completed=1),
        }
        counts = PracticeGoalCounts(learning=4, accuracy=4, fluency=3)

        expansion = plan_expansion(goals, counts)

        assert expansion.added == {GoalType.FLUENCY: 3}

    def test_accuracy_without_learning_chains_fluency(self):
        goals = {GoalType.ASSESSMENT: GoalCounter(total=2, completed=1)}
        counts = PracticeGoalCounts(accuracy=2, fluency=2)

        expansion = plan_expansion(goals, counts)

        assert expansion.added == {GoalType.ACCURACY: 2, GoalType.FLUENCY: 2}

    def test_nothing_new(self):
        goals = {
            GoalType.FLUENCY: GoalCounter(total=3),
            GoalType.ASSESSMENT: GoalCounter(total=2, completed=1),
        }

        assert plan_expansion(goals, PracticeGoalCounts(fluency=3)) is None

    def test_no_practice(self):
        goals = {GoalType.ASSESSMENT: GoalCounter(total=2, completed=1)}

        assert plan_expansion(goals, PracticeGoalCounts()) is None

    def test_outside_placement_phase(self):
        goals = {GoalType.ASSESSMENT: GoalCounter(total=2, completed=0)}

        assert plan_expansion(goals, PracticeGoalCounts(learning=3, accuracy=3)) is None


class TestCompletionMilestones:
    def test_half(self):
        goals = {
            GoalType.ACCURACY: GoalCounter(total=4, completed=4),
            GoalType.LEARNING: GoalCounter(total=4, completed=2),
        }

        assert completion_milestones(goals) == (True, False)

    def test_all(self):
        goals = {
            GoalType.FLUENCY: GoalCounter(total=8, completed=8),
            GoalType.ASSESSMENT: GoalCounter(total=1, completed=1),
        }

        assert completion_milestones(goals) == (True, True)

    def test_below_half(self):
        goals = {
            GoalType.LEARNING: GoalCounter(total=4, completed=4),
            GoalType.ACCURACY: GoalCounter(total=4, completed=3),
            GoalType.ASSESSMENT: GoalCounter(total=2, completed=0),
        }

        assert completion_milestones(goals) == (False, False)

    def test_empty(self):
        assert completion_milestones({}) == (False, False)
