"""Achievement progress with one-time reward grants."""

import structlog

from learnquest.errors import PersistenceError
from learnquest.models.events import AchievementCompleted
from learnquest.models.results import AchievementUpdate, OperationStatus
from learnquest.progression.profile_store import ProfileStore, ProfileTransaction

logger = structlog.get_logger()


class AchievementEngine:
    """Ratchets achievement progress and pays rewards on first completion.

    Progress values are absolute: ``update_progress("quiz_master", 12)`` means
    twelve correct answers so far. Progress never decreases, and the reward
    (XP, points, badges) is granted in the same transaction that completes
    the achievement, exactly once.
    """

    def __init__(self, profiles: ProfileStore):
        self.profiles = profiles

    @property
    def session_id(self) -> str:
        return self.profiles.session_id

    def get(self, achievement_id: str):
        return self.profiles.get_profile().get_achievement(achievement_id)

    def update_progress(self, achievement_id: str, new_progress: int) -> AchievementUpdate:
        try:
            with self.profiles.transaction() as txn:
                result = self.apply_progress(txn, achievement_id, new_progress)
        except PersistenceError as e:
            logger.error(
                "persistence_failed",
                op="update_achievement",
                session_id=self.session_id,
                achievement_id=achievement_id,
            )
            return AchievementUpdate(status=OperationStatus.FAILED, detail=str(e))
        return result

    def increment(self, achievement_id: str, delta: int = 1) -> AchievementUpdate:
        """Advance a counter achievement by ``delta``."""
        if delta <= 0:
            return AchievementUpdate(
                status=OperationStatus.INVALID, detail="delta must be positive"
            )
        try:
            with self.profiles.transaction() as txn:
                achievement = txn.profile.get_achievement(achievement_id)
                if achievement is None:
                    result = self.apply_progress(txn, achievement_id, delta)
                else:
                    result = self.apply_progress(txn, achievement_id, achievement.progress + delta)
        except PersistenceError as e:
            logger.error(
                "persistence_failed",
                op="increment_achievement",
                session_id=self.session_id,
                achievement_id=achievement_id,
            )
            return AchievementUpdate(status=OperationStatus.FAILED, detail=str(e))
        return result

    def apply_progress(
        self, txn: ProfileTransaction, achievement_id: str, new_progress: int
    ) -> AchievementUpdate:
        achievement = txn.profile.get_achievement(achievement_id)
        if achievement is None:
            logger.warning(
                "achievement_unknown", session_id=self.session_id, achievement_id=achievement_id
            )
            return AchievementUpdate(status=OperationStatus.NOT_FOUND, detail=achievement_id)
        if achievement.is_completed:
            return AchievementUpdate(
                status=OperationStatus.NOOP, achievement=achievement.model_copy(deep=True)
            )

        clamped = max(achievement.progress, min(new_progress, achievement.max_progress))
        if clamped == achievement.progress:
            return AchievementUpdate(
                status=OperationStatus.NOOP, achievement=achievement.model_copy(deep=True)
            )
        achievement.progress = clamped

        completed_now = achievement.progress >= achievement.max_progress
        if completed_now:
            achievement.is_completed = True
            achievement.completed_at = self.profiles.clock.now()
            logger.info(
                "achievement_completed",
                session_id=self.session_id,
                achievement_id=achievement_id,
            )
            self._grant_reward(txn, achievement)
            txn.emit(
                AchievementCompleted(
                    session_id=self.session_id, achievement=achievement.model_copy(deep=True)
                )
            )

        return AchievementUpdate(
            status=OperationStatus.APPLIED,
            achievement=achievement.model_copy(deep=True),
            completed_now=completed_now,
        )

    def _grant_reward(self, txn: ProfileTransaction, achievement) -> None:
        reward = achievement.reward
        if reward.xp > 0:
            self.profiles.apply_xp(txn, reward.xp, f"achievement:{achievement.id}")
        if reward.points > 0:
            self.profiles.apply_points(txn, reward.points)
        for badge_id in reward.badges:
            self.profiles.apply_badge(txn, badge_id)
