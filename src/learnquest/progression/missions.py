"""Day-scoped missions: generation, progress, completion rewards and claims."""

from datetime import date

import structlog

from learnquest.clock import next_midnight
from learnquest.errors import PersistenceError
from learnquest.models.events import MissionCompleted
from learnquest.models.mission import DailyMission, MissionType
from learnquest.models.results import MissionUpdate, OperationStatus
from learnquest.progression.profile_store import ProfileStore, ProfileTransaction
from learnquest.storage.repository import missions_key

logger = structlog.get_logger()


class MissionEngine:
    """Today's mission set for one session.

    A fresh set is issued from the catalog the first time a date is seen and
    expires at the next local midnight. Older sets are never loaded again.
    Completing a mission grants its reward once, in the completing update;
    ``claim`` only records that the UI collected it.
    """

    def __init__(self, profiles: ProfileStore):
        self.profiles = profiles

    @property
    def session_id(self) -> str:
        return self.profiles.session_id

    def _today_missions(self, txn: ProfileTransaction) -> tuple[date, list[DailyMission]]:
        now = self.profiles.clock.now()
        today = now.date()
        repository = self.profiles.repository
        key = missions_key(self.session_id, today)
        missions = txn.working(key, lambda: repository.load_missions(self.session_id, today))
        if missions is None:
            missions = self.profiles.catalog.issue_daily_missions(next_midnight(now))
            self._stage(txn, today, missions)
            logger.info(
                "missions_generated",
                session_id=self.session_id,
                date=today.isoformat(),
                missions=[m.id for m in missions],
            )
        return today, missions

    def _stage(self, txn: ProfileTransaction, day: date, missions: list[DailyMission]) -> None:
        repository = self.profiles.repository
        txn.stage(
            missions_key(self.session_id, day),
            missions,
            lambda value: repository.save_missions(self.session_id, day, value),
        )

    def get_missions(self) -> list[DailyMission]:
        """Today's missions, generating and persisting them on first access.

        Raises:
            PersistenceError: If the store cannot be read or written.
        """
        with self.profiles.transaction() as txn:
            _, missions = self._today_missions(txn)
            return [m.model_copy(deep=True) for m in missions]

    def update_progress(self, mission_id: str, delta: int) -> MissionUpdate:
        if delta <= 0:
            return MissionUpdate(status=OperationStatus.INVALID, detail="delta must be positive")
        try:
            with self.profiles.transaction() as txn:
                result = self.apply_progress(txn, mission_id, delta)
        except PersistenceError as e:
            logger.error(
                "persistence_failed",
                op="update_mission",
                session_id=self.session_id,
                mission_id=mission_id,
            )
            return MissionUpdate(status=OperationStatus.FAILED, detail=str(e))
        return result

    def record(self, mission_type: MissionType, delta: int = 1) -> list[MissionUpdate]:
        """Advance every mission of today's set tagged ``mission_type``."""
        if delta <= 0:
            return [MissionUpdate(status=OperationStatus.INVALID, detail="delta must be positive")]
        try:
            with self.profiles.transaction() as txn:
                results = self.apply_type(txn, mission_type, delta)
        except PersistenceError as e:
            logger.error("persistence_failed", op="record_mission", session_id=self.session_id)
            return [MissionUpdate(status=OperationStatus.FAILED, detail=str(e))]
        return results

    def apply_type(
        self, txn: ProfileTransaction, mission_type: MissionType, delta: int
    ) -> list[MissionUpdate]:
        _, missions = self._today_missions(txn)
        return [
            self.apply_progress(txn, m.id, delta) for m in missions if m.type == mission_type
        ]

    def apply_progress(self, txn: ProfileTransaction, mission_id: str, delta: int) -> MissionUpdate:
        today, missions = self._today_missions(txn)
        mission = next((m for m in missions if m.id == mission_id), None)
        if mission is None:
            logger.warning("mission_unknown", session_id=self.session_id, mission_id=mission_id)
            return MissionUpdate(status=OperationStatus.NOT_FOUND, detail=mission_id)
        if mission.is_expired(self.profiles.clock.now()) or mission.is_completed:
            return MissionUpdate(status=OperationStatus.NOOP, mission=mission.model_copy(deep=True))

        mission.current = min(mission.current + delta, mission.target)
        completed_now = mission.current >= mission.target
        if completed_now:
            mission.is_completed = True
            reward = mission.reward
            if reward.xp > 0:
                self.profiles.apply_xp(txn, reward.xp, f"mission:{mission.id}")
            if reward.points > 0:
                self.profiles.apply_points(txn, reward.points)
            for badge_id in reward.badges:
                self.profiles.apply_badge(txn, badge_id)
            txn.emit(
                MissionCompleted(session_id=self.session_id, mission=mission.model_copy(deep=True))
            )
            logger.info("mission_completed", session_id=self.session_id, mission_id=mission_id)
        self._stage(txn, today, missions)

        return MissionUpdate(
            status=OperationStatus.APPLIED,
            mission=mission.model_copy(deep=True),
            completed_now=completed_now,
        )

    def claim(self, mission_id: str) -> MissionUpdate:
        """Mark a completed mission as collected. Grants nothing."""
        try:
            with self.profiles.transaction() as txn:
                today, missions = self._today_missions(txn)
                mission = next((m for m in missions if m.id == mission_id), None)
                if mission is None:
                    return MissionUpdate(status=OperationStatus.NOT_FOUND, detail=mission_id)
                if not mission.is_completed:
                    return MissionUpdate(
                        status=OperationStatus.INVALID,
                        detail="mission not completed",
                        mission=mission.model_copy(deep=True),
                    )
                if mission.claimed_at is not None:
                    return MissionUpdate(
                        status=OperationStatus.NOOP, mission=mission.model_copy(deep=True)
                    )
                mission.claimed_at = self.profiles.clock.now()
                self._stage(txn, today, missions)
                result = MissionUpdate(
                    status=OperationStatus.APPLIED, mission=mission.model_copy(deep=True)
                )
        except PersistenceError as e:
            logger.error(
                "persistence_failed",
                op="claim_mission",
                session_id=self.session_id,
                mission_id=mission_id,
            )
            return MissionUpdate(status=OperationStatus.FAILED, detail=str(e))
        return result
