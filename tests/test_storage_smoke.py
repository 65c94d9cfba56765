"""Smoke tests for key-value stores and the progress repository."""

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from learnquest.errors import PersistenceError
from learnquest.models.activity import DailyStats
from learnquest.models.mission import DailyMission, MissionType
from learnquest.models.review import ReviewItem, ReviewType
from learnquest.models.user_profile import (
    Badge,
    BadgeCategory,
    GameAchievement,
    Rarity,
    Reward,
    UserProfile,
)
from learnquest.storage.json_store import JsonFileStore
from learnquest.storage.memory import InMemoryStore
from learnquest.storage.repository import ProgressRepository, missions_key


class TestJsonFileStore:
    def test_missing_key_returns_none(self, tmp_path):
        store = JsonFileStore(tmp_path)
        assert store.get("profile_abc") is None

    def test_put_get_delete(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.put("profile_abc", {"level": 3, "name": "학습자"})
        assert store.get("profile_abc") == {"level": 3, "name": "학습자"}
        assert (tmp_path / "profile_abc.json").exists()
        store.delete("profile_abc")
        assert store.get("profile_abc") is None
        store.delete("profile_abc")

    def test_no_temp_files_left(self, tmp_path):
        store = JsonFileStore(tmp_path)
        store.put("a", [1, 2])
        store.put("a", [3])
        assert sorted(p.name for p in tmp_path.glob("*.json")) == ["a.json"]

    def test_rejects_unsafe_keys(self, tmp_path):
        store = JsonFileStore(tmp_path)
        for key in ("../escape", ".hidden", "", "a/b"):
            with pytest.raises(PersistenceError):
                store.put(key, 1)

    def test_corrupt_file_raises(self, tmp_path):
        store = JsonFileStore(tmp_path)
        (tmp_path / "broken.json").write_text("{not json")
        with pytest.raises(PersistenceError) as exc:
            store.get("broken")
        assert exc.value.key == "broken"

    def test_unserializable_value_raises(self, tmp_path):
        store = JsonFileStore(tmp_path)
        with pytest.raises(PersistenceError):
            store.put("bad", {"when": object()})
        assert store.get("bad") is None


class TestInMemoryStore:
    def test_values_are_copied(self):
        store = InMemoryStore()
        value = {"items": [1]}
        store.put("k", value)
        value["items"].append(2)
        assert store.get("k") == {"items": [1]}

    def test_unserializable_value_raises(self):
        with pytest.raises(PersistenceError):
            InMemoryStore().put("k", {1, 2})


class TestProgressRepository:
    def test_profile_round_trip(self, tmp_path):
        repository = ProgressRepository(JsonFileStore(tmp_path))
        seoul = timezone(timedelta(hours=9))
        now = datetime(2026, 3, 2, 19, 0, tzinfo=seoul)
        profile = UserProfile(
            session_id="s1",
            created_at=now,
            updated_at=now,
            level=3,
            xp=20,
            total_xp=270,
            streak_days=4,
            max_streak=9,
            points=85,
            badges=[
                Badge(
                    id="streak_master",
                    name="Streak Master",
                    rarity=Rarity.RARE,
                    category=BadgeCategory.STREAK,
                    unlocked_at=now,
                )
            ],
            achievements=[
                GameAchievement(
                    id="first_study",
                    name="First Study",
                    progress=1,
                    max_progress=1,
                    is_completed=True,
                    completed_at=now,
                    reward=Reward(xp=50, points=10, badges=["first_steps"]),
                ),
                GameAchievement(
                    id="quiz_master", name="Quiz Master", progress=12, max_progress=100
                ),
            ],
        )
        repository.save_profile(profile)
        loaded = repository.load_profile("s1")
        assert loaded == profile
        assert loaded.badges[0].unlocked_at.utcoffset() == timedelta(hours=9)
        assert repository.load_profile("s2") is None

    def test_review_items_round_trip(self):
        repository = ProgressRepository(InMemoryStore())
        now = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
        items = [
            ReviewItem(
                id="quiz_42_1",
                type=ReviewType.QUIZ,
                content_id=42,
                difficulty=4,
                correct_count=2,
                total_count=3,
                last_reviewed=now,
                next_review=now + timedelta(days=14),
            ),
            ReviewItem(
                id="term_gpu_2",
                type=ReviewType.TERM,
                content_id="gpu",
                last_reviewed=now,
                next_review=now + timedelta(days=7),
                is_active=False,
            ),
        ]
        repository.save_review_items("s1", items)
        loaded = repository.load_review_items("s1")
        assert loaded == items
        assert isinstance(loaded[0].content_id, int)
        assert isinstance(loaded[1].content_id, str)

    def test_invalid_stored_profile_raises(self):
        store = InMemoryStore()
        store.put("profile_s1", {"session_id": "s1", "level": 0})
        with pytest.raises(PersistenceError):
            ProgressRepository(store).load_profile("s1")

    def test_missions_are_keyed_by_day(self):
        store = InMemoryStore()
        repository = ProgressRepository(store)
        day = date(2026, 3, 2)
        mission = DailyMission(
            id="daily_study",
            name="Daily Reader",
            type=MissionType.STUDY_AI,
            target=3,
            valid_until=datetime(2026, 3, 3, tzinfo=UTC),
        )
        repository.save_missions("s1", day, [mission])
        assert missions_key("s1", day) in store.keys()
        assert repository.load_missions("s1", day) == [mission]
        assert repository.load_missions("s1", date(2026, 3, 3)) is None

    def test_last_study_date(self):
        store = InMemoryStore()
        repository = ProgressRepository(store)
        assert repository.get_last_study_date("s1") is None
        repository.set_last_study_date("s1", date(2026, 3, 2))
        assert store.get("lastStudyDate_s1") == "2026-03-02"
        assert repository.get_last_study_date("s1") == date(2026, 3, 2)

    def test_bad_last_study_date_raises(self):
        store = InMemoryStore()
        store.put("lastStudyDate_s1", "yesterday")
        with pytest.raises(PersistenceError):
            ProgressRepository(store).get_last_study_date("s1")

    def test_activity_round_trip(self):
        repository = ProgressRepository(InMemoryStore())
        day = date(2026, 3, 2)
        repository.save_activity("s1", {day: DailyStats(date=day, quiz_count=4)})
        assert repository.load_activity("s1")[day].quiz_count == 4
        assert repository.load_review_items("s1") == []
        assert repository.load_goals("s1") == []
