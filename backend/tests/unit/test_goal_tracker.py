"""
Unit tests for DailyGoalsService.

Tests goal set creation, credits, increments, completion signals,
placement-phase recalculation, and summaries with the stores mocked out.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from factmastery.enums import FactStatus, GoalSignalType, GoalType
from factmastery.middleware.error_handling import StoreError, ValidationError
from factmastery.services.goals.calculator import GoalCounter
from factmastery.services.goals.store import GoalSetSnapshot
from factmastery.services.goals.tracker import DailyGoalsService


def make_snapshot(goal_date, goals, track_id="TRACK5", **kwargs) -> GoalSetSnapshot:
    return GoalSetSnapshot(
        id=kwargs.pop("id", 1),
        user_id="user-1",
        track_id=track_id,
        goal_date=goal_date,
        goals={goal_type: GoalCounter(*counts) for goal_type, counts in goals.items()},
        **kwargs,
    )


@pytest.fixture
def service(mock_db_session, mock_signals):
    """DailyGoalsService with mocked goal and fact stores."""
    svc = DailyGoalsService(mock_db_session, signals=mock_signals)

    svc.store = MagicMock()
    svc.store.get_goal_set = AsyncMock(return_value=None)
    svc.store.create_goal_set = AsyncMock(return_value=True)
    svc.store.credit_fact = AsyncMock(return_value=True)
    svc.store.increment_goal = AsyncMock(return_value=True)
    svc.store.mark_half_completed = AsyncMock(return_value=False)
    svc.store.mark_all_completed = AsyncMock(return_value=False)
    svc.store.apply_expansion = AsyncMock(return_value=True)
    svc.store.list_goal_sets = AsyncMock(return_value=[])

    svc.facts = MagicMock()
    svc.facts.status_counts = AsyncMock(return_value={})
    return svc


class TestGetDailyGoals:
    """Tests for lazy goal set creation."""

    @pytest.mark.asyncio
    async def test_returns_existing_set(self, service, today):
        existing = make_snapshot(today, {GoalType.ASSESSMENT: (3, 0)})
        service.store.get_goal_set.return_value = existing

        result = await service.get_daily_goals("user-1", "TRACK5", today)

        assert result is existing
        service.store.create_goal_set.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_set_on_first_access(self, service, mock_db_session, today):
        created = make_snapshot(today, {GoalType.ASSESSMENT: (3, 0)})
        service.store.get_goal_set.side_effect = [None, created]

        result = await service.get_daily_goals("user-1", "TRACK5", today)

        assert result is created
        service.store.create_goal_set.assert_awaited_once_with(
            "user-1", "TRACK5", today, {GoalType.ASSESSMENT: 3}
        )
        mock_db_session.commit.assert_awaited()

    @pytest.mark.asyncio
    async def test_creation_uses_fact_statuses(self, service, today):
        service.store.get_goal_set.side_effect = [None, make_snapshot(today, {})]
        service.facts.status_counts.return_value = {
            FactStatus.LEARNING: 2,
            FactStatus.ACCURACY_PRACTICE: 5,
        }

        await service.get_daily_goals("user-1", "TRACK5", today)

        totals = service.store.create_goal_set.await_args.args[3]
        assert totals == {
            GoalType.LEARNING: 2,
            GoalType.ACCURACY: 4,
            GoalType.FLUENCY: 5,
            GoalType.ASSESSMENT: 3,
        }

    @pytest.mark.asyncio
    async def test_lost_creation_race_reads_winner(self, service, today):
        winner = make_snapshot(today, {GoalType.ASSESSMENT: (3, 1)})
        service.store.get_goal_set.side_effect = [None, winner]
        service.store.create_goal_set.return_value = False

        result = await service.get_daily_goals("user-1", "TRACK5", today)

        assert result is winner

    @pytest.mark.asyncio
    async def test_unknown_track(self, service, today):
        with pytest.raises(ValidationError):
            await service.get_daily_goals("user-1", "TRACK99", today)

    @pytest.mark.asyncio
    async def test_database_failure(self, service, mock_db_session, today):
        service.store.get_goal_set.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(StoreError):
            await service.get_daily_goals("user-1", "TRACK5", today)

        mock_db_session.rollback.assert_awaited()


class TestCreditFact:
    """Tests for per-fact goal credits."""

    @pytest.mark.asyncio
    async def test_learning_credit_needs_existing_set(self, service, today):
        credited = await service.credit_fact(
            "user-1", "TRACK5", today, GoalType.LEARNING, "FACT400"
        )

        assert credited is False
        service.store.create_goal_set.assert_not_called()
        service.store.credit_fact.assert_not_called()

    @pytest.mark.asyncio
    async def test_accuracy_credit(self, service, mock_signals, today):
        snapshot = make_snapshot(today, {GoalType.ACCURACY: (4, 1), GoalType.ASSESSMENT: (1, 0)})
        service.store.get_goal_set.return_value = snapshot

        credited = await service.credit_fact(
            "user-1", "TRACK5", today, GoalType.ACCURACY, "FACT400"
        )

        assert credited is True
        service.store.credit_fact.assert_awaited_once_with(1, GoalType.ACCURACY, "FACT400")
        mock_signals.emit.assert_not_called()

    @pytest.mark.asyncio
    async def test_learning_credit_emits_signal(self, service, mock_signals, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.LEARNING: (4, 0), GoalType.ACCURACY: (4, 0)}
        )

        await service.credit_fact("user-1", "TRACK5", today, GoalType.LEARNING, "FACT400")

        mock_signals.emit.assert_awaited_once_with(
            GoalSignalType.LEARNING_GOAL_COMPLETED,
            "user-1",
            "TRACK5",
            today,
            fact_id="FACT400",
        )

    @pytest.mark.asyncio
    async def test_duplicate_credit_is_noop(self, service, mock_signals, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.LEARNING: (4, 1)}
        )
        service.store.credit_fact.return_value = False

        credited = await service.credit_fact(
            "user-1", "TRACK5", today, GoalType.LEARNING, "FACT400"
        )

        assert credited is False
        mock_signals.emit.assert_not_called()
        service.store.mark_half_completed.assert_not_called()

    @pytest.mark.asyncio
    async def test_absent_goal_type_is_noop(self, service, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.ASSESSMENT: (3, 0)}
        )

        credited = await service.credit_fact(
            "user-1", "TRACK5", today, GoalType.FLUENCY, "FACT400"
        )

        assert credited is False
        service.store.credit_fact.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_failure(self, service, mock_db_session, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.ACCURACY: (4, 0)}
        )
        service.store.credit_fact.side_effect = OperationalError("INSERT", {}, Exception("down"))

        with pytest.raises(StoreError):
            await service.credit_fact("user-1", "TRACK5", today, GoalType.ACCURACY, "FACT400")

        mock_db_session.rollback.assert_awaited()


class TestIncrementGoal:
    """Tests for direct goal increments."""

    @pytest.mark.asyncio
    async def test_rejects_non_positive_increment(self, service, today):
        with pytest.raises(ValidationError):
            await service.increment_goal("user-1", "TRACK5", today, GoalType.ASSESSMENT, 0)

    @pytest.mark.asyncio
    async def test_rejects_absent_goal_type(self, service, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.ASSESSMENT: (1, 0)}
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.increment_goal("user-1", "TRACK5", today, GoalType.FLUENCY)

        assert exc_info.value.details["goal_type"] == "fluency"
        service.store.increment_goal.assert_not_called()

    @pytest.mark.asyncio
    async def test_assessment_increment_starts_recalculation(self, service, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.ASSESSMENT: (1, 1)}
        )
        service.recalculator = MagicMock()

        result = await service.increment_goal("user-1", "TRACK5", today, GoalType.ASSESSMENT)

        service.store.increment_goal.assert_awaited_once_with(1, GoalType.ASSESSMENT, 1)
        service.recalculator.start_polling.assert_called_once_with("user-1", "TRACK5", today)
        assert result.goals[GoalType.ASSESSMENT].completed == 1

    @pytest.mark.asyncio
    async def test_full_goal_is_noop(self, service, mock_signals, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.FLUENCY: (8, 8)}
        )
        service.store.increment_goal.return_value = False

        await service.increment_goal("user-1", "TRACK5", today, GoalType.FLUENCY)

        service.store.mark_all_completed.assert_not_called()
        mock_signals.emit.assert_not_called()


class TestCheckCompletion:
    """Tests for exactly-once completion signals."""

    @pytest.mark.asyncio
    async def test_emits_half_and_all(self, service, mock_signals, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.FLUENCY: (8, 8), GoalType.ASSESSMENT: (1, 1)}
        )
        service.store.mark_half_completed.return_value = True
        service.store.mark_all_completed.return_value = True

        await service.check_completion("user-1", "TRACK5", today)

        emitted = [call.args[0] for call in mock_signals.emit.await_args_list]
        assert emitted == [GoalSignalType.HALF_COMPLETED, GoalSignalType.ALL_COMPLETED]

    @pytest.mark.asyncio
    async def test_half_only(self, service, mock_signals, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.FLUENCY: (8, 8), GoalType.ASSESSMENT: (1, 0)}
        )
        service.store.mark_half_completed.return_value = True

        await service.check_completion("user-1", "TRACK5", today)

        service.store.mark_all_completed.assert_not_called()
        mock_signals.emit.assert_awaited_once_with(
            GoalSignalType.HALF_COMPLETED, "user-1", "TRACK5", today
        )

    @pytest.mark.asyncio
    async def test_already_flagged_does_not_emit(self, service, mock_signals, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today,
            {GoalType.FLUENCY: (8, 8)},
            half_completed=True,
            all_completed=True,
        )

        await service.check_completion("user-1", "TRACK5", today)

        mock_signals.emit.assert_not_called()


class TestRecalculateIfNeeded:
    """Tests for placement-phase expansion."""

    @pytest.mark.asyncio
    async def test_expands_placement_set(self, service, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.ASSESSMENT: (2, 1)}, id=7
        )
        service.facts.status_counts.return_value = {FactStatus.LEARNING: 5}

        expanded = await service.recalculate_if_needed("user-1", "TRACK5", today)

        assert expanded is True
        set_id, expansion = service.store.apply_expansion.await_args.args
        assert set_id == 7
        assert expansion.added == {GoalType.LEARNING: 4, GoalType.ACCURACY: 4}
        assert expansion.assessment_total == 1

    @pytest.mark.asyncio
    async def test_outside_placement_phase(self, service, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.ASSESSMENT: (2, 0)}
        )

        assert await service.recalculate_if_needed("user-1", "TRACK5", today) is False
        service.facts.status_counts.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_new_practice(self, service, today):
        service.store.get_goal_set.return_value = make_snapshot(
            today, {GoalType.ASSESSMENT: (3, 1)}
        )

        assert await service.recalculate_if_needed("user-1", "TRACK5", today) is False
        service.store.apply_expansion.assert_not_called()


class TestGoalsSummary:
    """Tests for multi-day goal summaries."""

    @pytest.mark.asyncio
    async def test_includes_empty_days_newest_first(self, service, today):
        two_days_ago = today - timedelta(days=2)
        service.store.list_goal_sets.return_value = [
            make_snapshot(today, {GoalType.FLUENCY: (8, 8), GoalType.ASSESSMENT: (1, 0)}),
            make_snapshot(
                today,
                {GoalType.LEARNING: (4, 4)},
                track_id="TRACK6",
                id=2,
            ),
            make_snapshot(two_days_ago, {GoalType.ASSESSMENT: (2, 2)}, id=3),
        ]

        summary = await service.get_goals_summary(
            "user-1", ["TRACK5", "TRACK6"], today, days=3
        )

        service.store.list_goal_sets.assert_awaited_once_with(
            "user-1", ["TRACK5", "TRACK6"], two_days_ago
        )
        assert [entry.goal_date for entry in summary] == [
            today,
            today - timedelta(days=1),
            two_days_ago,
        ]
        assert (summary[0].goals_count, summary[0].goals_achieved_count) == (3, 2)
        assert (summary[1].goals_count, summary[1].goals_achieved_count) == (0, 0)
        assert (summary[2].goals_count, summary[2].goals_achieved_count) == (1, 1)

    @pytest.mark.asyncio
    async def test_default_days(self, service, today):
        summary = await service.get_goals_summary("user-1", ["TRACK5"], today)

        assert len(summary) == 8
