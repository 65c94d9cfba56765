"""Spaced-repetition scheduling on a simplified forgetting curve."""

import threading
from datetime import datetime, timedelta

import structlog

from learnquest.clock import Clock, SystemClock
from learnquest.errors import PersistenceError
from learnquest.locks import SessionLock
from learnquest.models.results import OperationResult, OperationStatus, ReviewOutcome
from learnquest.models.review import (
    DEFAULT_DIFFICULTY,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    ReviewItem,
    ReviewType,
)
from learnquest.storage.repository import ProgressRepository

logger = structlog.get_logger()

# Days until the next review, indexed by difficulty - 1
REVIEW_INTERVAL_DAYS: tuple[int, ...] = (1, 3, 7, 14, 30, 90)

# Accuracy thresholds for moving difficulty up / holding it
PROMOTE_ACCURACY = 0.9
HOLD_ACCURACY = 0.7


def interval_days(difficulty: int) -> int:
    """Review gap for a difficulty rating, clamped to the table."""
    index = min(max(difficulty - 1, 0), len(REVIEW_INTERVAL_DAYS) - 1)
    return REVIEW_INTERVAL_DAYS[index]


def next_difficulty(accuracy: float, difficulty: int) -> int:
    if accuracy >= PROMOTE_ACCURACY:
        return min(difficulty + 1, MAX_DIFFICULTY)
    if accuracy >= HOLD_ACCURACY:
        return difficulty
    return max(difficulty - 1, MIN_DIFFICULTY)


class ReviewScheduler:
    """Review items of one session and when each is due again.

    Well-retained items (high difficulty rating) wait longer before their
    next review. Items are never removed, only deactivated.

    Args:
        session_id: Session owning the items.
        repository: Typed persistence.
        clock: Source of timestamps.
        lock: Session lock shared with the session's other components.
    """

    def __init__(
        self,
        session_id: str,
        repository: ProgressRepository,
        clock: Clock | None = None,
        lock: SessionLock | None = None,
    ):
        self.session_id = session_id
        self.repository = repository
        self.clock = clock or SystemClock()
        self.lock = lock or threading.RLock()

    def list_items(self, include_inactive: bool = False) -> list[ReviewItem]:
        with self.lock:
            items = self.repository.load_review_items(self.session_id)
        if include_inactive:
            return items
        return [item for item in items if item.is_active]

    def get_item(self, item_id: str) -> ReviewItem | None:
        return next((i for i in self.list_items(include_inactive=True) if i.id == item_id), None)

    def find(self, review_type: ReviewType, content_id: str | int) -> ReviewItem | None:
        """Active item tracking ``content_id``, if any."""
        return next(
            (
                i
                for i in self.list_items()
                if i.type == review_type and str(i.content_id) == str(content_id)
            ),
            None,
        )

    def add_item(self, review_type: ReviewType, content_id: str | int) -> ReviewOutcome:
        try:
            with self.lock:
                items = self.repository.load_review_items(self.session_id)
                now = self.clock.now()
                taken = {i.id for i in items}
                stamp = int(now.timestamp() * 1000)
                while f"{review_type.value}_{content_id}_{stamp}" in taken:
                    stamp += 1
                item = ReviewItem(
                    id=f"{review_type.value}_{content_id}_{stamp}",
                    type=review_type,
                    content_id=content_id,
                    difficulty=DEFAULT_DIFFICULTY,
                    last_reviewed=now,
                    next_review=now + timedelta(days=interval_days(DEFAULT_DIFFICULTY)),
                )
                items.append(item)
                self.repository.save_review_items(self.session_id, items)
        except PersistenceError as e:
            logger.error("persistence_failed", op="add_review_item", session_id=self.session_id)
            return ReviewOutcome(status=OperationStatus.FAILED, detail=str(e))
        logger.info("review_item_added", session_id=self.session_id, item_id=item.id)
        return ReviewOutcome(status=OperationStatus.APPLIED, item=item)

    def record_outcome(self, item_id: str, is_correct: bool) -> ReviewOutcome:
        """Record one review answer and reschedule the item."""
        try:
            with self.lock:
                items = self.repository.load_review_items(self.session_id)
                item = next((i for i in items if i.id == item_id), None)
                if item is None:
                    logger.warning(
                        "review_item_unknown", session_id=self.session_id, item_id=item_id
                    )
                    return ReviewOutcome(status=OperationStatus.NOT_FOUND, detail=item_id)

                item.total_count += 1
                if is_correct:
                    item.correct_count += 1
                accuracy = item.correct_count / item.total_count
                previous = item.difficulty
                item.difficulty = next_difficulty(accuracy, item.difficulty)
                now = self.clock.now()
                item.last_reviewed = now
                item.next_review = now + timedelta(days=interval_days(item.difficulty))
                self.repository.save_review_items(self.session_id, items)
        except PersistenceError as e:
            logger.error("persistence_failed", op="record_review", session_id=self.session_id)
            return ReviewOutcome(status=OperationStatus.FAILED, detail=str(e))

        logger.info(
            "review_recorded",
            session_id=self.session_id,
            item_id=item_id,
            correct=is_correct,
            accuracy=round(accuracy, 3),
            difficulty=item.difficulty,
            previous_difficulty=previous,
        )
        return ReviewOutcome(status=OperationStatus.APPLIED, item=item)

    def deactivate(self, item_id: str) -> OperationResult:
        try:
            with self.lock:
                items = self.repository.load_review_items(self.session_id)
                item = next((i for i in items if i.id == item_id), None)
                if item is None:
                    return OperationResult(status=OperationStatus.NOT_FOUND, detail=item_id)
                if not item.is_active:
                    return OperationResult(status=OperationStatus.NOOP)
                item.is_active = False
                self.repository.save_review_items(self.session_id, items)
        except PersistenceError as e:
            logger.error("persistence_failed", op="deactivate_review", session_id=self.session_id)
            return OperationResult(status=OperationStatus.FAILED, detail=str(e))
        return OperationResult(status=OperationStatus.APPLIED)

    def get_due_reviews(self, now: datetime | None = None) -> list[ReviewItem]:
        """Active items due at ``now``, most overdue first."""
        moment = now or self.clock.now()
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.clock.now().tzinfo)
        due = [item for item in self.list_items() if item.next_review <= moment]
        return sorted(due, key=lambda item: item.next_review)
