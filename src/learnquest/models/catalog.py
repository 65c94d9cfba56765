"""Static catalog definitions: badges, achievements, daily missions, rewards.

The catalog is configuration data loaded once from ``config/catalog.yaml``;
engines only look entries up by id.
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from learnquest.models.activity import StudyKind
from learnquest.models.mission import DailyMission, MissionType
from learnquest.models.user_profile import (
    Badge,
    BadgeCategory,
    GameAchievement,
    Rarity,
    Reward,
)


class BadgeDefinition(BaseModel):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    rarity: Rarity = Rarity.COMMON
    category: BadgeCategory = BadgeCategory.ACHIEVEMENT

    def unlock(self, at: datetime) -> Badge:
        return Badge(**self.model_dump(), unlocked_at=at)


class AchievementDefinition(BaseModel):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    max_progress: int = Field(default=1, ge=1)
    reward: Reward = Field(default_factory=Reward)

    def new_progress(self) -> GameAchievement:
        return GameAchievement(**self.model_dump(), progress=0)


class MissionDefinition(BaseModel):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    type: MissionType
    target: int = Field(ge=1)
    reward: Reward = Field(default_factory=Reward)

    def issue(self, valid_until: datetime) -> DailyMission:
        return DailyMission(**self.model_dump(), valid_until=valid_until)


class StudyReward(BaseModel):
    """XP and points granted per unit of a study event."""

    xp: int = Field(default=0, ge=0)
    points: int = Field(default=0, ge=0)
    # Granted instead of xp/points for a wrong quiz or review answer
    xp_incorrect: int = Field(default=0, ge=0)


class LevelUpPolicy(BaseModel):
    """Bonus points credited for each level gained."""

    enabled: bool = True
    points_per_level: int = Field(default=10, ge=0)

    def bonus_for(self, old_level: int, new_level: int) -> int:
        if not self.enabled:
            return 0
        return sum(self.points_per_level * lvl for lvl in range(old_level + 1, new_level + 1))


class Catalog(BaseModel):
    version: int = 1
    badges: list[BadgeDefinition] = Field(default_factory=list)
    achievements: list[AchievementDefinition] = Field(default_factory=list)
    daily_missions: list[MissionDefinition] = Field(default_factory=list)
    study_rewards: dict[StudyKind, StudyReward] = Field(default_factory=dict)
    level_up: LevelUpPolicy = Field(default_factory=LevelUpPolicy)

    @model_validator(mode="after")
    def _check_references(self) -> "Catalog":
        for name, entries in (
            ("badge", self.badges),
            ("achievement", self.achievements),
            ("mission", self.daily_missions),
        ):
            ids = [e.id for e in entries]
            if len(ids) != len(set(ids)):
                raise ValueError(f"duplicate {name} ids in catalog")
        known_badges = {b.id for b in self.badges}
        for entry in [*self.achievements, *self.daily_missions]:
            missing = set(entry.reward.badges) - known_badges
            if missing:
                raise ValueError(f"{entry.id} rewards unknown badges: {sorted(missing)}")
        return self

    def badge(self, badge_id: str) -> BadgeDefinition | None:
        return next((b for b in self.badges if b.id == badge_id), None)

    def achievement(self, achievement_id: str) -> AchievementDefinition | None:
        return next((a for a in self.achievements if a.id == achievement_id), None)

    def study_reward(self, kind: StudyKind) -> StudyReward:
        return self.study_rewards.get(kind, StudyReward())

    def initial_achievements(self) -> list[GameAchievement]:
        return [a.new_progress() for a in self.achievements]

    def issue_daily_missions(self, valid_until: datetime) -> list[DailyMission]:
        return [m.issue(valid_until) for m in self.daily_missions]
