"""Typed notification events emitted by the engine."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from learnquest.models.mission import DailyMission, Goal
from learnquest.models.user_profile import Badge, GameAchievement


def _now() -> datetime:
    return datetime.now().astimezone()


class _Event(BaseModel):
    session_id: str
    emitted_at: datetime = Field(default_factory=_now)


class XPEarned(_Event):
    type: Literal["xp_earned"] = "xp_earned"
    amount: int
    source: str = ""


class LevelUp(_Event):
    type: Literal["level_up"] = "level_up"
    new_level: int
    levels_gained: int = 1
    bonus_points: int = 0


class PointsEarned(_Event):
    type: Literal["points_earned"] = "points_earned"
    amount: int


class BadgeUnlocked(_Event):
    type: Literal["badge_unlocked"] = "badge_unlocked"
    badge: Badge


class AchievementCompleted(_Event):
    type: Literal["achievement_completed"] = "achievement_completed"
    achievement: GameAchievement


class StreakMilestone(_Event):
    type: Literal["streak_milestone"] = "streak_milestone"
    days: int


class MissionCompleted(_Event):
    type: Literal["mission_completed"] = "mission_completed"
    mission: DailyMission


class GoalCompleted(_Event):
    type: Literal["goal_completed"] = "goal_completed"
    goal: Goal


ProgressEvent = Annotated[
    XPEarned
    | LevelUp
    | PointsEarned
    | BadgeUnlocked
    | AchievementCompleted
    | StreakMilestone
    | MissionCompleted
    | GoalCompleted,
    Field(discriminator="type"),
]
