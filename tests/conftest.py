"""Shared fixtures: frozen clock, in-memory store and a small catalog."""

from datetime import UTC, datetime

import pytest

from learnquest.clock import FixedClock
from learnquest.errors import PersistenceError
from learnquest.events import EventBus, EventRecorder
from learnquest.models.catalog import Catalog
from learnquest.progression.profile_store import ProfileStore
from learnquest.storage.memory import InMemoryStore
from learnquest.storage.repository import ProgressRepository
from learnquest.tracker import ProgressTracker

SESSION_ID = "session-1"

CATALOG_DATA = {
    "version": 1,
    "badges": [
        {"id": "first_steps", "name": "First Steps", "category": "learning"},
        {"id": "streak_master", "name": "Streak Master", "rarity": "rare", "category": "streak"},
        {"id": "quiz_expert", "name": "Quiz Expert", "rarity": "epic", "category": "quiz"},
    ],
    "achievements": [
        {
            "id": "first_study",
            "name": "First Study",
            "max_progress": 1,
            "reward": {"xp": 50, "points": 10, "badges": ["first_steps"]},
        },
        {
            "id": "streak_7",
            "name": "Week Warrior",
            "max_progress": 1,
            "reward": {"xp": 200, "points": 50, "badges": ["streak_master"]},
        },
        {
            "id": "quiz_master",
            "name": "Quiz Master",
            "max_progress": 100,
            "reward": {"xp": 500, "points": 100, "badges": ["quiz_expert"]},
        },
        {
            "id": "term_collector",
            "name": "Term Collector",
            "max_progress": 50,
            "reward": {"xp": 300, "points": 60},
        },
        {
            "id": "review_regular",
            "name": "Review Regular",
            "max_progress": 30,
            "reward": {"xp": 300, "points": 60},
        },
    ],
    "daily_missions": [
        {
            "id": "daily_study",
            "name": "Daily Reader",
            "type": "study_ai",
            "target": 3,
            "reward": {"xp": 100, "points": 20},
        },
        {
            "id": "daily_quiz",
            "name": "Quiz Challenge",
            "type": "take_quiz",
            "target": 10,
            "reward": {"xp": 150, "points": 30},
        },
        {
            "id": "daily_focus",
            "name": "Deep Focus",
            "type": "focus_time",
            "target": 25,
            "reward": {"xp": 50, "points": 10},
        },
    ],
    "study_rewards": {
        "ai_info": {"xp": 20, "points": 5},
        "quiz": {"xp": 10, "points": 2, "xp_incorrect": 2},
        "term": {"xp": 10, "points": 5},
        "flashcard": {"xp": 10, "points": 5},
        "focus_session": {"xp": 50, "points": 10},
        "review": {"xp": 5, "points": 1, "xp_incorrect": 1},
    },
}


class FlakyStore(InMemoryStore):
    """In-memory store whose writes can be switched off, for every key or
    only for keys starting with ``fail_prefix``."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False
        self.fail_prefix: str | None = None

    def put(self, key, value):
        if self.fail_writes or (self.fail_prefix and key.startswith(self.fail_prefix)):
            raise PersistenceError(key, "disk full")
        super().put(key, value)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 2, 10, 0, tzinfo=UTC))


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def repository(store):
    return ProgressRepository(store)


@pytest.fixture
def catalog():
    return Catalog.model_validate(CATALOG_DATA)


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def bus(recorder):
    bus = EventBus()
    bus.subscribe(recorder)
    return bus


@pytest.fixture
def profiles(repository, catalog, bus, clock):
    return ProfileStore(SESSION_ID, repository, catalog, bus=bus, clock=clock)


@pytest.fixture
def tracker(repository, catalog, bus, clock):
    return ProgressTracker(SESSION_ID, repository, catalog, clock=clock, bus=bus)
