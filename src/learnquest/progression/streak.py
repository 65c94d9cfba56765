"""Daily study streak state machine."""

from datetime import date, timedelta

import structlog

from learnquest.errors import PersistenceError
from learnquest.models.events import StreakMilestone
from learnquest.models.results import OperationStatus, StreakState, StreakUpdate
from learnquest.progression.profile_store import ProfileStore, ProfileTransaction
from learnquest.storage.repository import last_study_date_key

logger = structlog.get_logger()


def classify(last_study_date: date | None, today: date) -> StreakState:
    """Where ``last_study_date`` sits relative to ``today`` (calendar days)."""
    if last_study_date is None:
        return StreakState.NO_ACTIVITY_YET
    if last_study_date >= today:
        return StreakState.ACTIVE_TODAY
    if last_study_date == today - timedelta(days=1):
        return StreakState.CONTINUING_STREAK
    return StreakState.STREAK_BROKEN


class StreakTracker:
    """Counts consecutive local calendar days with study activity.

    The last study date lives under its own key and is written in the same
    commit as the profile. Calling ``update_streak`` again on the same day
    changes nothing.
    """

    def __init__(self, profiles: ProfileStore):
        self.profiles = profiles

    @property
    def session_id(self) -> str:
        return self.profiles.session_id

    def last_study_date(self) -> date | None:
        return self.profiles.repository.get_last_study_date(self.session_id)

    def update_streak(self) -> StreakUpdate:
        try:
            with self.profiles.transaction() as txn:
                result = self.apply(txn)
        except PersistenceError as e:
            logger.error("persistence_failed", op="update_streak", session_id=self.session_id)
            return StreakUpdate(status=OperationStatus.FAILED, detail=str(e))
        return result

    def apply(self, txn: ProfileTransaction) -> StreakUpdate:
        repository = self.profiles.repository
        key = last_study_date_key(self.session_id)
        last = txn.working(key, lambda: repository.get_last_study_date(self.session_id))
        today = self.profiles.clock.today()
        state = classify(last, today)
        profile = txn.profile

        if state == StreakState.ACTIVE_TODAY:
            return StreakUpdate(
                status=OperationStatus.NOOP,
                state=state,
                streak_days=profile.streak_days,
                max_streak=profile.max_streak,
            )

        previous = profile.streak_days
        if state == StreakState.CONTINUING_STREAK:
            profile.streak_days += 1
        else:
            profile.streak_days = 1
        profile.max_streak = max(profile.max_streak, profile.streak_days)
        txn.stage(
            key, today, lambda day: repository.set_last_study_date(self.session_id, day)
        )

        if state == StreakState.STREAK_BROKEN:
            logger.info(
                "streak_broken", session_id=self.session_id, previous=previous, last_study=str(last)
            )
        logger.info(
            "streak_updated",
            session_id=self.session_id,
            state=state.value,
            streak_days=profile.streak_days,
        )
        if profile.streak_days > 1:
            txn.emit(StreakMilestone(session_id=self.session_id, days=profile.streak_days))

        return StreakUpdate(
            status=OperationStatus.APPLIED,
            state=state,
            streak_days=profile.streak_days,
            max_streak=profile.max_streak,
        )
