"""Owner of the session's UserProfile: XP, level, points and badges.

All mutations run inside ``ProfileStore.transaction()``: the profile is read
from the repository, changed on a working copy, persisted, and only then are
the buffered events published. Nested transactions (an achievement reward
granting XP which unlocks a badge) share the outer working copy and commit
once.
"""

import copy
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import structlog

from learnquest.clock import Clock, SystemClock
from learnquest.errors import PersistenceError
from learnquest.events import EventBus
from learnquest.locks import SessionLock
from learnquest.models.catalog import Catalog
from learnquest.models.events import BadgeUnlocked, LevelUp, PointsEarned, ProgressEvent, XPEarned
from learnquest.models.results import OperationResult, OperationStatus, XPAward
from learnquest.models.user_profile import UserProfile
from learnquest.progression.level_curve import cumulative_xp_for_level, level_for_total_xp
from learnquest.storage.repository import ProgressRepository

logger = structlog.get_logger()


class ProfileTransaction:
    """Working state of one atomic engine operation.

    Besides the profile, components keep other per-key state here (today's
    missions, the last study date) so that repeated reads inside one
    transaction see earlier writes. Staged values are written on commit
    before the profile; if any write fails, the keys already written are
    restored to the values first loaded, so a failed operation leaves the
    store as it found it.
    """

    def __init__(self, profile: UserProfile, is_new: bool = False):
        self.profile = profile
        self.is_new = is_new
        self._original = profile.model_copy(deep=True)
        self.events: list[ProgressEvent] = []
        self._working: dict[str, Any] = {}
        self._originals: dict[str, Any] = {}
        self._writers: dict[str, Callable[[Any], None]] = {}

    def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)

    def working(self, key: str, loader: Callable[[], Any]) -> Any:
        """Value for ``key`` in this transaction, loading it on first use."""
        if key not in self._working:
            self._working[key] = loader()
            self._originals[key] = copy.deepcopy(self._working[key])
        return self._working[key]

    def stage(self, key: str, value: Any, writer: Callable[[Any], None]) -> None:
        """Record ``value`` as the new state for ``key``, written on commit."""
        self._working[key] = value
        self._writers[key] = writer

    @property
    def profile_changed(self) -> bool:
        return self.is_new or self.profile != self._original

    def commit(self, repository: ProgressRepository, now: datetime) -> None:
        written: list[str] = []
        try:
            for key, writer in self._writers.items():
                writer(self._working[key])
                written.append(key)
            if self.profile_changed:
                self.profile.updated_at = now
                repository.save_profile(self.profile)
        except PersistenceError:
            self._rollback(repository, written)
            raise

    def _rollback(self, repository: ProgressRepository, keys: list[str]) -> None:
        for key in reversed(keys):
            original = self._originals.get(key)
            try:
                if original is None:
                    # Key did not exist before this transaction
                    repository.store.delete(key)
                else:
                    self._writers[key](original)
            except PersistenceError as e:
                logger.error("rollback_failed", key=key, error=str(e))


class ProfileStore:
    """XP, level, points and badge operations for one session.

    Args:
        session_id: Session whose profile this store owns.
        repository: Typed persistence.
        catalog: Badge/achievement catalog and level-up policy.
        bus: Event sink for notifications.
        clock: Source of timestamps.
        lock: Session lock shared with the session's other components.
    """

    def __init__(
        self,
        session_id: str,
        repository: ProgressRepository,
        catalog: Catalog,
        bus: EventBus | None = None,
        clock: Clock | None = None,
        lock: SessionLock | None = None,
    ):
        self.session_id = session_id
        self.repository = repository
        self.catalog = catalog
        self.bus = bus or EventBus()
        self.clock = clock or SystemClock()
        self.lock = lock or threading.RLock()
        self._active: ProfileTransaction | None = None

    def _new_profile(self) -> UserProfile:
        now = self.clock.now()
        logger.info("profile_created", session_id=self.session_id)
        return UserProfile(
            session_id=self.session_id,
            created_at=now,
            updated_at=now,
            achievements=self.catalog.initial_achievements(),
        )

    def get_profile(self) -> UserProfile:
        """Current profile, created and persisted on first access.

        Raises:
            PersistenceError: If the store cannot be read or written.
        """
        with self.lock:
            if self._active is not None:
                return self._active.profile.model_copy(deep=True)
            profile = self.repository.load_profile(self.session_id)
            if profile is None:
                profile = self._new_profile()
                self.repository.save_profile(profile)
            return profile

    @property
    def in_transaction(self) -> bool:
        return self._active is not None

    @contextmanager
    def transaction(self) -> Iterator[ProfileTransaction]:
        """Atomic read-modify-persist scope; re-entrant."""
        with self.lock:
            if self._active is not None:
                yield self._active
                return
            profile = self.repository.load_profile(self.session_id)
            if profile is None:
                txn = ProfileTransaction(self._new_profile(), is_new=True)
            else:
                txn = ProfileTransaction(profile)
            self._active = txn
            try:
                yield txn
                txn.commit(self.repository, self.clock.now())
            finally:
                self._active = None
        self.bus.publish_all(txn.events)

    def _failed(self, op: str, error: PersistenceError) -> str:
        logger.error("persistence_failed", op=op, session_id=self.session_id, key=error.key)
        return str(error)

    # XP

    def add_xp(self, amount: int, source: str = "") -> XPAward:
        """Add XP, recompute the level and credit any level-up bonus.

        Non-positive amounts are rejected without touching state.
        """
        if amount <= 0:
            logger.warning("xp_rejected", session_id=self.session_id, amount=amount, source=source)
            return XPAward(status=OperationStatus.INVALID, detail="amount must be positive")
        try:
            with self.transaction() as txn:
                award = self.apply_xp(txn, amount, source)
        except PersistenceError as e:
            return XPAward(status=OperationStatus.FAILED, detail=self._failed("add_xp", e))
        return award

    def apply_xp(self, txn: ProfileTransaction, amount: int, source: str = "") -> XPAward:
        profile = txn.profile
        old_level = profile.level
        profile.total_xp += amount
        new_level = max(old_level, level_for_total_xp(profile.total_xp))
        leveled_up = new_level > old_level
        if leveled_up:
            profile.xp = profile.total_xp - cumulative_xp_for_level(new_level)
        else:
            profile.xp += amount
        profile.level = new_level
        txn.emit(XPEarned(session_id=self.session_id, amount=amount, source=source))
        logger.info(
            "xp_earned",
            session_id=self.session_id,
            amount=amount,
            source=source,
            total_xp=profile.total_xp,
        )

        bonus = 0
        if leveled_up:
            bonus = self.catalog.level_up.bonus_for(old_level, new_level)
            logger.info(
                "level_up",
                session_id=self.session_id,
                old_level=old_level,
                new_level=new_level,
                bonus_points=bonus,
            )
            txn.emit(
                LevelUp(
                    session_id=self.session_id,
                    new_level=new_level,
                    levels_gained=new_level - old_level,
                    bonus_points=bonus,
                )
            )
            if bonus > 0:
                self.apply_points(txn, bonus)

        return XPAward(
            status=OperationStatus.APPLIED,
            leveled_up=leveled_up,
            new_level=new_level,
            levels_gained=new_level - old_level,
            bonus_points=bonus,
        )

    # points

    def add_points(self, amount: int) -> OperationResult:
        if amount <= 0:
            logger.warning("points_rejected", session_id=self.session_id, amount=amount)
            return OperationResult(status=OperationStatus.INVALID, detail="amount must be positive")
        try:
            with self.transaction() as txn:
                self.apply_points(txn, amount)
        except PersistenceError as e:
            return OperationResult(
                status=OperationStatus.FAILED, detail=self._failed("add_points", e)
            )
        return OperationResult(status=OperationStatus.APPLIED)

    def apply_points(self, txn: ProfileTransaction, amount: int) -> None:
        txn.profile.points += amount
        txn.emit(PointsEarned(session_id=self.session_id, amount=amount))

    # badges

    def unlock_badge(self, badge_id: str) -> OperationResult:
        """Unlock a catalog badge once; owned or unknown ids are no-ops."""
        if self.catalog.badge(badge_id) is None:
            logger.warning("badge_unknown", session_id=self.session_id, badge_id=badge_id)
            return OperationResult(status=OperationStatus.NOT_FOUND, detail=badge_id)
        try:
            with self.transaction() as txn:
                status = self.apply_badge(txn, badge_id)
        except PersistenceError as e:
            return OperationResult(
                status=OperationStatus.FAILED, detail=self._failed("unlock_badge", e)
            )
        return OperationResult(status=status)

    def apply_badge(self, txn: ProfileTransaction, badge_id: str) -> OperationStatus:
        definition = self.catalog.badge(badge_id)
        if definition is None:
            return OperationStatus.NOT_FOUND
        if txn.profile.has_badge(badge_id):
            return OperationStatus.NOOP
        badge = definition.unlock(self.clock.now())
        txn.profile.badges.append(badge)
        txn.emit(BadgeUnlocked(session_id=self.session_id, badge=badge))
        logger.info("badge_unlocked", session_id=self.session_id, badge_id=badge_id)
        return OperationStatus.APPLIED
