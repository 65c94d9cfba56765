"""Smoke tests for Pydantic models."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import TypeAdapter, ValidationError

from learnquest.models.catalog import Catalog
from learnquest.models.events import LevelUp, ProgressEvent, XPEarned
from learnquest.models.results import OperationResult, OperationStatus
from learnquest.models.review import ReviewItem, ReviewType
from learnquest.models.user_profile import GameAchievement, UserProfile

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)


class TestUserProfile:
    def test_default_values(self):
        profile = UserProfile(session_id="s1")
        assert profile.level == 1
        assert profile.xp == 0
        assert profile.badges == []
        assert profile.preferences.theme == "dark"
        assert profile.preferences.language == "ko"
        assert profile.created_at.tzinfo is not None

    def test_max_streak_below_current_rejected(self):
        with pytest.raises(ValidationError):
            UserProfile(session_id="s1", streak_days=5, max_streak=3)

    def test_duplicate_badges_rejected(self):
        badge = {"id": "b", "name": "B", "unlocked_at": NOW}
        with pytest.raises(ValidationError):
            UserProfile(session_id="s1", badges=[badge, badge])

    def test_model_dump_json_mode(self):
        data = UserProfile(session_id="s1", created_at=NOW, updated_at=NOW).model_dump(mode="json")
        assert data["session_id"] == "s1"
        assert data["created_at"].startswith("2026-03-02T10:00:00")


class TestGameAchievement:
    def test_progress_above_max_rejected(self):
        with pytest.raises(ValidationError):
            GameAchievement(id="a", name="A", progress=3, max_progress=2)

    def test_ratio(self):
        assert GameAchievement(id="a", name="A", progress=25, max_progress=100).ratio == 0.25


class TestReviewItem:
    def test_accuracy(self):
        item = ReviewItem(
            id="quiz_1_0",
            type=ReviewType.QUIZ,
            content_id=1,
            correct_count=3,
            total_count=4,
            last_reviewed=NOW,
            next_review=NOW + timedelta(days=7),
        )
        assert item.accuracy == 0.75

    def test_correct_above_total_rejected(self):
        with pytest.raises(ValidationError):
            ReviewItem(
                id="quiz_1_0",
                type=ReviewType.QUIZ,
                content_id=1,
                correct_count=2,
                total_count=1,
                last_reviewed=NOW,
                next_review=NOW,
            )


class TestEvents:
    def test_discriminated_union(self):
        adapter = TypeAdapter(ProgressEvent)
        event = adapter.validate_python(
            {"type": "level_up", "session_id": "s1", "new_level": 3, "levels_gained": 2}
        )
        assert isinstance(event, LevelUp)
        assert event.bonus_points == 0

    def test_round_trip(self):
        event = XPEarned(session_id="s1", amount=20, source="quiz")
        restored = TypeAdapter(ProgressEvent).validate_json(event.model_dump_json())
        assert restored == event


class TestCatalog:
    def test_unknown_reward_badge_rejected(self):
        with pytest.raises(ValidationError):
            Catalog.model_validate(
                {
                    "achievements": [
                        {"id": "a", "name": "A", "reward": {"badges": ["missing"]}},
                    ]
                }
            )

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError):
            Catalog.model_validate(
                {"badges": [{"id": "b", "name": "B"}, {"id": "b", "name": "B2"}]}
            )

    def test_study_reward_defaults_to_zero(self):
        reward = Catalog().study_reward("quiz")
        assert reward.xp == 0
        assert reward.points == 0


class TestOperationResult:
    def test_ok_flags(self):
        assert OperationResult(status=OperationStatus.NOOP).ok
        assert not OperationResult(status=OperationStatus.NOOP).applied
        assert not OperationResult(status=OperationStatus.FAILED).ok
