"""Operation result models returned by every public engine call."""

from enum import StrEnum

from pydantic import BaseModel

from learnquest.models.mission import DailyMission, Goal
from learnquest.models.review import ReviewItem
from learnquest.models.user_profile import GameAchievement


class OperationStatus(StrEnum):
    """Outcome of an engine operation."""

    APPLIED = "applied"
    NOOP = "noop"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    FAILED = "failed"  # persistence failed, nothing committed


class StreakState(StrEnum):
    """Where the last study date sits relative to today."""

    NO_ACTIVITY_YET = "no_activity_yet"
    ACTIVE_TODAY = "active_today"
    CONTINUING_STREAK = "continuing_streak"
    STREAK_BROKEN = "streak_broken"


class OperationResult(BaseModel):
    status: OperationStatus
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (OperationStatus.APPLIED, OperationStatus.NOOP)

    @property
    def applied(self) -> bool:
        return self.status == OperationStatus.APPLIED


class XPAward(OperationResult):
    leveled_up: bool = False
    new_level: int = 1
    levels_gained: int = 0
    bonus_points: int = 0


class AchievementUpdate(OperationResult):
    achievement: GameAchievement | None = None
    completed_now: bool = False


class StreakUpdate(OperationResult):
    state: StreakState | None = None
    streak_days: int = 0
    max_streak: int = 0


class MissionUpdate(OperationResult):
    mission: DailyMission | None = None
    completed_now: bool = False


class GoalUpdate(OperationResult):
    goal: Goal | None = None
    completed_now: bool = False


class ReviewOutcome(OperationResult):
    item: ReviewItem | None = None


class StudyResult(OperationResult):
    """Everything one study event changed, component by component."""

    kind: str
    xp: XPAward | None = None
    points: OperationResult | None = None
    streak: StreakUpdate | None = None
    achievements: list[AchievementUpdate] = []
    missions: list[MissionUpdate] = []
    goals: list[GoalUpdate] = []
    review: ReviewOutcome | None = None
