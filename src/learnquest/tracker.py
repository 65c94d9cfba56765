"""Per-session composition root: fans study events out to every engine."""

import threading

import structlog

from learnquest.clock import Clock, SystemClock
from learnquest.errors import PersistenceError
from learnquest.events import EventBus
from learnquest.locks import SessionLock, SessionLocks
from learnquest.models.activity import StudyKind
from learnquest.models.catalog import Catalog
from learnquest.models.mission import GoalCategory, MissionType
from learnquest.models.results import (
    AchievementUpdate,
    OperationResult,
    OperationStatus,
    ReviewOutcome,
    StreakUpdate,
    StudyResult,
)
from learnquest.models.review import ReviewType
from learnquest.models.user_profile import UserProfile
from learnquest.progression.achievements import AchievementEngine
from learnquest.progression.activity import ActivityLog
from learnquest.progression.goals import GoalTracker
from learnquest.progression.missions import MissionEngine
from learnquest.progression.profile_store import ProfileStore, ProfileTransaction
from learnquest.progression.streak import StreakTracker
from learnquest.review.scheduler import ReviewScheduler
from learnquest.storage.repository import ProgressRepository

logger = structlog.get_logger()

# Achievements advanced by every qualifying study event
FIRST_STUDY = "first_study"
QUIZ_MASTER = "quiz_master"
TERM_COLLECTOR = "term_collector"
REVIEW_REGULAR = "review_regular"
STREAK_ACHIEVEMENTS: dict[str, int] = {"streak_7": 7, "streak_30": 30, "streak_100": 100}

_MISSION_FOR_KIND: dict[StudyKind, MissionType] = {
    StudyKind.AI_INFO: MissionType.STUDY_AI,
    StudyKind.QUIZ: MissionType.TAKE_QUIZ,
    StudyKind.TERM: MissionType.LEARN_TERMS,
    StudyKind.FLASHCARD: MissionType.LEARN_TERMS,
    StudyKind.FOCUS_SESSION: MissionType.FOCUS_TIME,
}

_GOAL_FOR_KIND: dict[StudyKind, GoalCategory] = {
    StudyKind.AI_INFO: GoalCategory.AI_INFO,
    StudyKind.QUIZ: GoalCategory.QUIZ,
    StudyKind.TERM: GoalCategory.TERMS,
    StudyKind.FLASHCARD: GoalCategory.TERMS,
}

_REVIEW_FOR_KIND: dict[StudyKind, ReviewType] = {
    StudyKind.AI_INFO: ReviewType.AI_INFO,
    StudyKind.QUIZ: ReviewType.QUIZ,
    StudyKind.TERM: ReviewType.TERM,
    StudyKind.FLASHCARD: ReviewType.TERM,
}


class ProgressTracker:
    """All progression components of one session, wired together.

    Components never call their siblings; this class turns one study event
    into the XP, streak, achievement, mission, goal, activity and review
    updates it implies. The profile-side updates of one event commit
    together; the review schedule is written after that commit.

    Args:
        session_id: Session to track.
        repository: Typed persistence shared by all components.
        catalog: Static catalog.
        clock: Source of dates and timestamps.
        bus: Event sink; a private bus is created when omitted.
        lock: Session lock; a private lock is created when omitted.
    """

    def __init__(
        self,
        session_id: str,
        repository: ProgressRepository,
        catalog: Catalog,
        clock: Clock | None = None,
        bus: EventBus | None = None,
        lock: SessionLock | None = None,
    ):
        self.session_id = session_id
        self.clock = clock or SystemClock()
        self.bus = bus or EventBus()
        self.lock = lock or threading.RLock()
        self.profiles = ProfileStore(
            session_id, repository, catalog, bus=self.bus, clock=self.clock, lock=self.lock
        )
        self.achievements = AchievementEngine(self.profiles)
        self.streak = StreakTracker(self.profiles)
        self.missions = MissionEngine(self.profiles)
        self.goals = GoalTracker(self.profiles)
        self.activity = ActivityLog(self.profiles)
        self.reviews = ReviewScheduler(session_id, repository, clock=self.clock, lock=self.lock)

    @property
    def catalog(self) -> Catalog:
        return self.profiles.catalog

    def get_profile(self) -> UserProfile:
        return self.profiles.get_profile()

    def _apply_streak(
        self, txn: ProfileTransaction
    ) -> tuple[StreakUpdate, list[AchievementUpdate]]:
        streak = self.streak.apply(txn)
        updates: list[AchievementUpdate] = []
        if streak.status == OperationStatus.APPLIED:
            for achievement_id, days in STREAK_ACHIEVEMENTS.items():
                if streak.streak_days >= days:
                    updates.append(self.achievements.apply_progress(txn, achievement_id, 1))
            self.goals.apply_category(txn, GoalCategory.STREAK, reached=streak.streak_days)
        return streak, updates

    def check_in(self) -> StreakUpdate:
        """Count today toward the streak, as opening the app does."""
        try:
            with self.profiles.transaction() as txn:
                streak, _ = self._apply_streak(txn)
        except PersistenceError as e:
            logger.error("persistence_failed", op="check_in", session_id=self.session_id)
            return StreakUpdate(status=OperationStatus.FAILED, detail=str(e))
        return streak

    def record_study(
        self,
        kind: StudyKind,
        content_id: str | int | None = None,
        is_correct: bool | None = None,
        count: int = 1,
        minutes: int = 0,
    ) -> StudyResult:
        """Apply one study event to every component.

        Args:
            kind: What was studied.
            content_id: Content identifier; for ``StudyKind.REVIEW`` the
                review item id.
            is_correct: Answer correctness for quizzes, flashcards and
                reviews; None when not applicable.
            count: Number of items studied in this event.
            minutes: Study time, used by focus sessions and the activity log.
        """
        if count <= 0 or minutes < 0:
            return StudyResult(
                status=OperationStatus.INVALID, kind=kind.value, detail="count must be positive"
            )
        if kind == StudyKind.REVIEW and content_id is None:
            return StudyResult(
                status=OperationStatus.INVALID, kind=kind.value, detail="review needs an item id"
            )
        if kind == StudyKind.REVIEW and is_correct is None:
            return StudyResult(
                status=OperationStatus.INVALID, kind=kind.value, detail="review needs an answer"
            )

        with self.lock:
            try:
                if kind == StudyKind.REVIEW and self.reviews.get_item(str(content_id)) is None:
                    logger.warning(
                        "review_item_unknown", session_id=self.session_id, item_id=content_id
                    )
                    return StudyResult(
                        status=OperationStatus.NOT_FOUND, kind=kind.value, detail=str(content_id)
                    )
                with self.profiles.transaction() as txn:
                    result = self._apply_study(txn, kind, is_correct, count, minutes)
            except PersistenceError as e:
                logger.error(
                    "persistence_failed",
                    op="record_study",
                    session_id=self.session_id,
                    kind=kind.value,
                )
                return StudyResult(status=OperationStatus.FAILED, kind=kind.value, detail=str(e))
            if content_id is not None:
                result.review = self._schedule_review(kind, content_id, is_correct)

        logger.info(
            "study_recorded",
            session_id=self.session_id,
            kind=kind.value,
            count=count,
            correct=is_correct,
            leveled_up=bool(result.xp and result.xp.leveled_up),
        )
        return result

    def _apply_study(
        self,
        txn: ProfileTransaction,
        kind: StudyKind,
        is_correct: bool | None,
        count: int,
        minutes: int,
    ) -> StudyResult:
        result = StudyResult(status=OperationStatus.APPLIED, kind=kind.value)
        result.streak, result.achievements = self._apply_streak(txn)

        reward = self.catalog.study_reward(kind)
        if is_correct is False:
            xp, points = reward.xp_incorrect * count, 0
        else:
            xp, points = reward.xp * count, reward.points * count
        if xp > 0:
            result.xp = self.profiles.apply_xp(txn, xp, kind.value)
            result.goals.extend(self.goals.apply_category(txn, GoalCategory.XP, delta=xp))
        if points > 0:
            self.profiles.apply_points(txn, points)
            result.points = OperationResult(status=OperationStatus.APPLIED)

        result.achievements.append(self.achievements.apply_progress(txn, FIRST_STUDY, 1))
        correct = count if is_correct else 0
        if kind == StudyKind.QUIZ and correct:
            result.achievements.append(self._increment(txn, QUIZ_MASTER, correct))
        elif kind in (StudyKind.TERM, StudyKind.FLASHCARD) and is_correct is not False:
            result.achievements.append(self._increment(txn, TERM_COLLECTOR, count))
        elif kind == StudyKind.REVIEW:
            result.achievements.append(self._increment(txn, REVIEW_REGULAR, count))

        mission_type = _MISSION_FOR_KIND.get(kind)
        if mission_type == MissionType.FOCUS_TIME:
            if minutes > 0:
                result.missions = self.missions.apply_type(txn, mission_type, minutes)
        elif mission_type is not None:
            # Flashcards only count toward term missions when answered right
            if not (kind == StudyKind.FLASHCARD and is_correct is False):
                result.missions = self.missions.apply_type(txn, mission_type, count)

        goal_category = _GOAL_FOR_KIND.get(kind)
        if goal_category is not None:
            result.goals.extend(self.goals.apply_category(txn, goal_category, delta=count))

        self.activity.apply(
            txn, kind, count=count, correct=correct, xp=xp, study_minutes=minutes
        )
        return result

    def _increment(
        self, txn: ProfileTransaction, achievement_id: str, delta: int
    ) -> AchievementUpdate:
        achievement = txn.profile.get_achievement(achievement_id)
        current = achievement.progress if achievement is not None else 0
        return self.achievements.apply_progress(txn, achievement_id, current + delta)

    def _schedule_review(
        self, kind: StudyKind, content_id: str | int, is_correct: bool | None
    ) -> ReviewOutcome | None:
        if kind == StudyKind.REVIEW:
            return self.reviews.record_outcome(str(content_id), is_correct)
        review_type = _REVIEW_FOR_KIND.get(kind)
        if review_type is None:
            return None
        existing = self.reviews.find(review_type, content_id)
        if existing is None:
            return self.reviews.add_item(review_type, content_id)
        if is_correct is None:
            return ReviewOutcome(status=OperationStatus.NOOP, item=existing)
        return self.reviews.record_outcome(existing.id, is_correct)


class SessionRegistry:
    """Hands out one ``ProgressTracker`` per session id.

    Trackers of different sessions share the repository, catalog, clock and
    event bus but no mutable state.
    """

    def __init__(
        self,
        repository: ProgressRepository,
        catalog: Catalog,
        clock: Clock | None = None,
        bus: EventBus | None = None,
    ):
        self.repository = repository
        self.catalog = catalog
        self.clock = clock or SystemClock()
        self.bus = bus or EventBus()
        self._locks = SessionLocks()
        self._trackers: dict[str, ProgressTracker] = {}
        self._guard = threading.Lock()

    def tracker(self, session_id: str) -> ProgressTracker:
        with self._guard:
            tracker = self._trackers.get(session_id)
            if tracker is None:
                tracker = ProgressTracker(
                    session_id,
                    self.repository,
                    self.catalog,
                    clock=self.clock,
                    bus=self.bus,
                    lock=self._locks.for_session(session_id),
                )
                self._trackers[session_id] = tracker
            return tracker
