"""
Unit tests for API request/response models.

Tests request validation and conversion between API models and the
service-layer dataclasses.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from factmastery.enums import FactStatus, GoalType
from factmastery.models.goals import DailyGoalsResponse, GoalIncrementRequest
from factmastery.models.progress import (
    AttemptEntry,
    SubmitAttemptsRequest,
    TrackProgressResponse,
)
from factmastery.services.goals.calculator import GoalCounter
from factmastery.services.goals.store import GoalSetSnapshot
from factmastery.services.learning import ContextStats, FactState, TrackProgressView


class TestAttemptEntry:
    """Tests for attempt entry validation."""

    def test_defaults(self):
        entry = AttemptEntry()

        assert entry.attempts == 0
        assert entry.practice_context == "default"
        assert entry.status is None

    def test_status_from_wire_value(self):
        entry = AttemptEntry(status="accuracyPractice")

        assert entry.status == FactStatus.ACCURACY_PRACTICE

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            AttemptEntry(status="expert")

    def test_correct_cannot_exceed_attempts(self):
        with pytest.raises(ValidationError):
            AttemptEntry(attempts=2, correct=3)

    def test_negative_counts_rejected(self):
        with pytest.raises(ValidationError):
            AttemptEntry(attempts=-1)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            AttemptEntry(attempts=1, correct=1, speed=3)

    def test_to_input(self):
        entry = AttemptEntry(
            attempts=3, correct=2, time_spent_ms=4500, practice_context="fluency1"
        )

        attempt = entry.to_input()

        assert (attempt.attempts, attempt.correct, attempt.time_spent_ms) == (3, 2, 4500)
        assert attempt.practice_context == "fluency1"
        assert not attempt.is_empty


class TestSubmitAttemptsRequest:
    def test_parses_fact_map(self):
        request = SubmitAttemptsRequest.model_validate(
            {
                "user_id": "user-1",
                "facts": {"FACT400": {"attempts": 1, "correct": 1, "time_spent_ms": 900}},
            }
        )

        assert request.facts["FACT400"].time_spent_ms == 900

    def test_user_required(self):
        with pytest.raises(ValidationError):
            SubmitAttemptsRequest.model_validate({"facts": {}})


class TestGoalIncrementRequest:
    def test_default_increment(self):
        request = GoalIncrementRequest(user_id="user-1", goal_type="assessment")

        assert request.goal_type == GoalType.ASSESSMENT
        assert request.increment == 1

    def test_increment_must_be_positive(self):
        with pytest.raises(ValidationError):
            GoalIncrementRequest(user_id="user-1", goal_type="assessment", increment=0)


class TestResponses:
    def test_track_progress_from_view(self):
        view = TrackProgressView(
            track_id="TRACK5",
            overall_cqpm=30.0,
            accuracy_rate=0.95,
            facts={
                "FACT400": FactState(
                    fact_id="FACT400",
                    status=FactStatus.MASTERED,
                    attempts=3,
                    correct=3,
                    time_spent_ms=3000,
                    today_stats={"default": ContextStats(attempts=3, correct=3, time_spent_ms=3000)},
                    retention_day=1,
                    next_retention_date=date(2024, 5, 16),
                    version=2,
                )
            },
        )

        response = TrackProgressResponse.from_view(view)
        data = response.model_dump(mode="json")

        fact = data["facts"]["FACT400"]
        assert fact["status"] == "mastered"
        assert fact["today_stats"]["default"]["avg_response_time_sec"] == 1.0
        assert fact["next_retention_date"] == "2024-05-16"
        assert "version" not in fact

    def test_daily_goals_from_snapshot(self):
        snapshot = GoalSetSnapshot(
            id=1,
            user_id="user-1",
            track_id="TRACK5",
            goal_date=date(2024, 5, 15),
            all_completed=True,
            goals={GoalType.ASSESSMENT: GoalCounter(total=1, completed=1)},
        )

        data = DailyGoalsResponse.from_snapshot(snapshot).model_dump(mode="json")

        assert data["date"] == "2024-05-15"
        assert data["goals"] == {"assessment": {"total": 1, "completed": 1}}
        assert data["all_completed"] is True
