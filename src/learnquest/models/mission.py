"""Daily mission and user goal models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from learnquest.models.user_profile import Reward


class MissionType(StrEnum):
    """Tag naming which event kind advances a mission."""

    STUDY_AI = "study_ai"
    TAKE_QUIZ = "take_quiz"
    LEARN_TERMS = "learn_terms"
    STREAK = "streak"
    POINTS = "points"
    FOCUS_TIME = "focus_time"


class DailyMission(BaseModel):
    """A day-scoped goal. Inert once ``valid_until`` has passed."""

    id: str
    name: str
    description: str = ""
    icon: str = ""
    type: MissionType
    target: int = Field(ge=1)
    current: int = Field(default=0, ge=0)
    is_completed: bool = False
    reward: Reward = Field(default_factory=Reward)
    valid_until: datetime
    claimed_at: datetime | None = None

    @model_validator(mode="after")
    def _check_current(self) -> "DailyMission":
        if self.current > self.target:
            raise ValueError(f"mission {self.id}: current {self.current} > target {self.target}")
        return self

    def is_expired(self, now: datetime) -> bool:
        return now >= self.valid_until


class GoalType(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class GoalCategory(StrEnum):
    AI_INFO = "ai_info"
    QUIZ = "quiz"
    TERMS = "terms"
    STREAK = "streak"
    XP = "xp"


class Goal(BaseModel):
    """A user-defined target with a deadline and a one-time reward."""

    id: str
    name: str
    description: str = ""
    type: GoalType = GoalType.CUSTOM
    category: GoalCategory
    target: int = Field(ge=1)
    current: int = Field(default=0, ge=0)
    deadline: datetime
    is_completed: bool = False
    completed_at: datetime | None = None
    reward: Reward = Field(default_factory=Reward)

    def is_expired(self, now: datetime) -> bool:
        return now > self.deadline
