"""User profile model for tracking XP, level, streak, points and rewards."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


def _now() -> datetime:
    return datetime.now().astimezone()


class Rarity(StrEnum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class BadgeCategory(StrEnum):
    LEARNING = "learning"
    STREAK = "streak"
    QUIZ = "quiz"
    SOCIAL = "social"
    ACHIEVEMENT = "achievement"


class Reward(BaseModel):
    """XP, points and badge ids granted once when a goal is completed."""

    xp: int = Field(default=0, ge=0)
    points: int = Field(default=0, ge=0)
    badges: list[str] = Field(default_factory=list)


class Badge(BaseModel):
    """An unlocked badge. ``unlocked_at`` is stamped once and never changes."""

    id: str
    name: str
    description: str = ""
    icon: str = ""
    rarity: Rarity = Rarity.COMMON
    category: BadgeCategory = BadgeCategory.ACHIEVEMENT
    unlocked_at: datetime


class GameAchievement(BaseModel):
    """Progress toward one catalog achievement.

    ``is_completed`` turns true exactly once and stays true; ``completed_at``
    is set on that transition.
    """

    id: str
    name: str
    description: str = ""
    icon: str = ""
    progress: int = Field(default=0, ge=0)
    max_progress: int = Field(ge=1)
    is_completed: bool = False
    completed_at: datetime | None = None
    reward: Reward = Field(default_factory=Reward)

    @model_validator(mode="after")
    def _check_progress(self) -> "GameAchievement":
        if self.progress > self.max_progress:
            raise ValueError(
                f"achievement {self.id}: progress {self.progress} > max {self.max_progress}"
            )
        return self

    @property
    def ratio(self) -> float:
        return self.progress / self.max_progress


class StudyReminder(BaseModel):
    id: str
    time: str  # "HH:MM"
    days: list[int] = Field(default_factory=list)  # 0-6, Sunday first
    message: str = ""
    is_active: bool = True


class NotificationPreferences(BaseModel):
    daily: bool = True
    weekly: bool = True
    achievements: bool = True
    reminders: bool = True


class UserPreferences(BaseModel):
    theme: str = "dark"  # light/dark/auto
    language: str = "ko"
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    study_reminders: list[StudyReminder] = Field(default_factory=list)
    sound_effects: bool = True
    animations: bool = True


class UserProfile(BaseModel):
    session_id: str
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)  # XP into the current level only
    total_xp: int = Field(default=0, ge=0)
    streak_days: int = Field(default=0, ge=0)
    max_streak: int = Field(default=0, ge=0)
    points: int = Field(default=0, ge=0)
    badges: list[Badge] = Field(default_factory=list)
    achievements: list[GameAchievement] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    @model_validator(mode="after")
    def _check_invariants(self) -> "UserProfile":
        if self.max_streak < self.streak_days:
            raise ValueError(
                f"max_streak {self.max_streak} < streak_days {self.streak_days}"
            )
        badge_ids = [b.id for b in self.badges]
        if len(badge_ids) != len(set(badge_ids)):
            raise ValueError("duplicate badge ids")
        achievement_ids = [a.id for a in self.achievements]
        if len(achievement_ids) != len(set(achievement_ids)):
            raise ValueError("duplicate achievement ids")
        return self

    def has_badge(self, badge_id: str) -> bool:
        return any(b.id == badge_id for b in self.badges)

    def get_achievement(self, achievement_id: str) -> GameAchievement | None:
        for achievement in self.achievements:
            if achievement.id == achievement_id:
                return achievement
        return None
