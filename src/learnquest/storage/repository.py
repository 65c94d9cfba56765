"""Typed persistence of engine state on top of a key-value store."""

from datetime import date

from pydantic import TypeAdapter, ValidationError

from learnquest.errors import PersistenceError
from learnquest.models.activity import DailyStats
from learnquest.models.mission import DailyMission, Goal
from learnquest.models.review import ReviewItem
from learnquest.models.user_profile import UserProfile
from learnquest.storage.base import KeyValueStore

_profile_adapter = TypeAdapter(UserProfile)
_missions_adapter = TypeAdapter(list[DailyMission])
_review_items_adapter = TypeAdapter(list[ReviewItem])
_goals_adapter = TypeAdapter(list[Goal])
_activity_adapter = TypeAdapter(list[DailyStats])


def profile_key(session_id: str) -> str:
    return f"profile_{session_id}"


def missions_key(session_id: str, day: date) -> str:
    return f"missions_{session_id}_{day.isoformat()}"


def review_items_key(session_id: str) -> str:
    return f"reviewItems_{session_id}"


def last_study_date_key(session_id: str) -> str:
    return f"lastStudyDate_{session_id}"


def goals_key(session_id: str) -> str:
    return f"goals_{session_id}"


def activity_key(session_id: str) -> str:
    return f"activity_{session_id}"


class ProgressRepository:
    """Serializes engine state to JSON values under per-session keys.

    Stored values are ``model_dump(mode="json")`` output, so a load after a
    save yields an equal model. Values that fail validation on load raise
    ``PersistenceError``.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _load(self, key: str, adapter: TypeAdapter):
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return adapter.validate_python(raw)
        except ValidationError as e:
            raise PersistenceError(key, f"stored value is invalid: {e}") from e

    # profile

    def load_profile(self, session_id: str) -> UserProfile | None:
        return self._load(profile_key(session_id), _profile_adapter)

    def save_profile(self, profile: UserProfile) -> None:
        self.store.put(profile_key(profile.session_id), profile.model_dump(mode="json"))

    # missions

    def load_missions(self, session_id: str, day: date) -> list[DailyMission] | None:
        return self._load(missions_key(session_id, day), _missions_adapter)

    def save_missions(self, session_id: str, day: date, missions: list[DailyMission]) -> None:
        self.store.put(
            missions_key(session_id, day), _missions_adapter.dump_python(missions, mode="json")
        )

    # review items

    def load_review_items(self, session_id: str) -> list[ReviewItem]:
        return self._load(review_items_key(session_id), _review_items_adapter) or []

    def save_review_items(self, session_id: str, items: list[ReviewItem]) -> None:
        self.store.put(
            review_items_key(session_id), _review_items_adapter.dump_python(items, mode="json")
        )

    # streak date

    def get_last_study_date(self, session_id: str) -> date | None:
        key = last_study_date_key(session_id)
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return date.fromisoformat(raw)
        except (TypeError, ValueError) as e:
            raise PersistenceError(key, f"stored value is not an ISO date: {raw!r}") from e

    def set_last_study_date(self, session_id: str, day: date) -> None:
        self.store.put(last_study_date_key(session_id), day.isoformat())

    # goals

    def load_goals(self, session_id: str) -> list[Goal]:
        return self._load(goals_key(session_id), _goals_adapter) or []

    def save_goals(self, session_id: str, goals: list[Goal]) -> None:
        self.store.put(goals_key(session_id), _goals_adapter.dump_python(goals, mode="json"))

    # activity

    def load_activity(self, session_id: str) -> dict[date, DailyStats]:
        entries = self._load(activity_key(session_id), _activity_adapter) or []
        return {entry.date: entry for entry in entries}

    def save_activity(self, session_id: str, activity: dict[date, DailyStats]) -> None:
        entries = [activity[day] for day in sorted(activity)]
        self.store.put(
            activity_key(session_id), _activity_adapter.dump_python(entries, mode="json")
        )
