"""User-defined goals with deadlines and one-time rewards."""

from datetime import datetime

import structlog

from learnquest.errors import PersistenceError
from learnquest.models.events import GoalCompleted
from learnquest.models.mission import Goal, GoalCategory, GoalType
from learnquest.models.results import GoalUpdate, OperationResult, OperationStatus
from learnquest.models.user_profile import Reward
from learnquest.progression.profile_store import ProfileStore, ProfileTransaction
from learnquest.storage.repository import goals_key

logger = structlog.get_logger()


class GoalTracker:
    """Goals a user sets for themselves (daily, weekly, monthly or custom).

    Like missions, a goal pays its reward in the update that completes it and
    never again. Goals past their deadline are inert.
    """

    def __init__(self, profiles: ProfileStore):
        self.profiles = profiles

    @property
    def session_id(self) -> str:
        return self.profiles.session_id

    def _goals(self, txn: ProfileTransaction) -> list[Goal]:
        repository = self.profiles.repository
        return txn.working(
            goals_key(self.session_id), lambda: repository.load_goals(self.session_id)
        )

    def _stage(self, txn: ProfileTransaction, goals: list[Goal]) -> None:
        repository = self.profiles.repository
        txn.stage(
            goals_key(self.session_id),
            goals,
            lambda value: repository.save_goals(self.session_id, value),
        )

    def list_goals(self) -> list[Goal]:
        with self.profiles.lock:
            return self.profiles.repository.load_goals(self.session_id)

    def create_goal(
        self,
        name: str,
        category: GoalCategory,
        target: int,
        deadline: datetime,
        reward: Reward | None = None,
        goal_type: GoalType = GoalType.CUSTOM,
        description: str = "",
    ) -> GoalUpdate:
        if target <= 0:
            return GoalUpdate(status=OperationStatus.INVALID, detail="target must be positive")
        now = self.profiles.clock.now()
        if deadline.tzinfo is None:
            deadline = deadline.replace(tzinfo=now.tzinfo)
        if deadline <= now:
            return GoalUpdate(status=OperationStatus.INVALID, detail="deadline already passed")
        try:
            with self.profiles.transaction() as txn:
                goals = self._goals(txn)
                taken = {g.id for g in goals}
                stamp = int(now.timestamp() * 1000)
                while f"goal_{stamp}" in taken:
                    stamp += 1
                goal = Goal(
                    id=f"goal_{stamp}",
                    name=name,
                    description=description,
                    type=goal_type,
                    category=category,
                    target=target,
                    deadline=deadline,
                    reward=reward or Reward(),
                )
                goals.append(goal)
                self._stage(txn, goals)
        except PersistenceError as e:
            logger.error("persistence_failed", op="create_goal", session_id=self.session_id)
            return GoalUpdate(status=OperationStatus.FAILED, detail=str(e))
        logger.info("goal_created", session_id=self.session_id, goal_id=goal.id, target=target)
        return GoalUpdate(status=OperationStatus.APPLIED, goal=goal.model_copy(deep=True))

    def delete_goal(self, goal_id: str) -> OperationResult:
        try:
            with self.profiles.transaction() as txn:
                goals = self._goals(txn)
                remaining = [g for g in goals if g.id != goal_id]
                if len(remaining) == len(goals):
                    return OperationResult(status=OperationStatus.NOT_FOUND, detail=goal_id)
                self._stage(txn, remaining)
        except PersistenceError as e:
            logger.error("persistence_failed", op="delete_goal", session_id=self.session_id)
            return OperationResult(status=OperationStatus.FAILED, detail=str(e))
        return OperationResult(status=OperationStatus.APPLIED)

    def update_progress(self, goal_id: str, delta: int) -> GoalUpdate:
        if delta <= 0:
            return GoalUpdate(status=OperationStatus.INVALID, detail="delta must be positive")
        try:
            with self.profiles.transaction() as txn:
                goal = next((g for g in self._goals(txn) if g.id == goal_id), None)
                if goal is None:
                    return GoalUpdate(status=OperationStatus.NOT_FOUND, detail=goal_id)
                result = self._advance(txn, goal, goal.current + delta)
        except PersistenceError as e:
            logger.error("persistence_failed", op="update_goal", session_id=self.session_id)
            return GoalUpdate(status=OperationStatus.FAILED, detail=str(e))
        return result

    def apply_category(
        self, txn: ProfileTransaction, category: GoalCategory, delta: int = 0, reached: int = 0
    ) -> list[GoalUpdate]:
        """Advance goals of ``category`` by ``delta``, or up to an absolute
        ``reached`` value for level-like categories such as streaks."""
        results = []
        for goal in self._goals(txn):
            if goal.category != category:
                continue
            new_current = goal.current + delta if delta > 0 else reached
            results.append(self._advance(txn, goal, new_current))
        return results

    def _advance(self, txn: ProfileTransaction, goal: Goal, new_current: int) -> GoalUpdate:
        now = self.profiles.clock.now()
        if goal.is_completed or goal.is_expired(now):
            return GoalUpdate(status=OperationStatus.NOOP, goal=goal.model_copy(deep=True))
        clamped = max(goal.current, min(new_current, goal.target))
        if clamped == goal.current:
            return GoalUpdate(status=OperationStatus.NOOP, goal=goal.model_copy(deep=True))
        goal.current = clamped

        completed_now = goal.current >= goal.target
        if completed_now:
            goal.is_completed = True
            goal.completed_at = now
            if goal.reward.xp > 0:
                self.profiles.apply_xp(txn, goal.reward.xp, f"goal:{goal.id}")
            if goal.reward.points > 0:
                self.profiles.apply_points(txn, goal.reward.points)
            for badge_id in goal.reward.badges:
                self.profiles.apply_badge(txn, badge_id)
            txn.emit(GoalCompleted(session_id=self.session_id, goal=goal.model_copy(deep=True)))
            logger.info("goal_completed", session_id=self.session_id, goal_id=goal.id)
        self._stage(txn, self._goals(txn))
        return GoalUpdate(
            status=OperationStatus.APPLIED,
            goal=goal.model_copy(deep=True),
            completed_now=completed_now,
        )
