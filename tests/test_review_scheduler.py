"""Tests for spaced-repetition scheduling."""

from datetime import timedelta

import pytest

from learnquest.models.results import OperationStatus
from learnquest.models.review import ReviewType
from learnquest.review.scheduler import ReviewScheduler, interval_days, next_difficulty


class TestIntervals:
    @pytest.mark.parametrize(
        "difficulty,days", [(0, 1), (1, 1), (2, 3), (3, 7), (4, 14), (5, 30), (6, 90), (9, 90)]
    )
    def test_interval_table(self, difficulty, days):
        assert interval_days(difficulty) == days

    @pytest.mark.parametrize(
        "accuracy,difficulty,expected",
        [(1.0, 3, 4), (0.9, 3, 4), (0.8, 3, 3), (0.7, 3, 3), (0.5, 3, 2), (0.0, 1, 1), (1.0, 5, 5)],
    )
    def test_next_difficulty(self, accuracy, difficulty, expected):
        assert next_difficulty(accuracy, difficulty) == expected


@pytest.fixture
def scheduler(repository, clock):
    return ReviewScheduler("session-1", repository, clock=clock)


class TestAddItem:
    def test_new_item_defaults(self, scheduler, clock):
        outcome = scheduler.add_item(ReviewType.QUIZ, 42)
        item = outcome.item
        assert outcome.status == OperationStatus.APPLIED
        assert item.difficulty == 3
        assert item.total_count == 0
        assert item.accuracy is None
        assert item.next_review == clock.now() + timedelta(days=7)
        assert item.id.startswith("quiz_42_")

    def test_ids_are_unique_within_a_millisecond(self, scheduler):
        first = scheduler.add_item(ReviewType.TERM, "gpu").item
        second = scheduler.add_item(ReviewType.TERM, "gpu").item
        assert first.id != second.id

    def test_find_matches_content_id_as_text(self, scheduler):
        scheduler.add_item(ReviewType.QUIZ, 42)
        assert scheduler.find(ReviewType.QUIZ, "42") is not None
        assert scheduler.find(ReviewType.TERM, 42) is None


class TestRecordOutcome:
    def test_correct_answers_raise_difficulty_to_cap(self, scheduler):
        item_id = scheduler.add_item(ReviewType.TERM, "llm").item.id
        difficulties, gaps = [], []
        for _ in range(3):
            item = scheduler.record_outcome(item_id, True).item
            difficulties.append(item.difficulty)
            gaps.append((item.next_review - item.last_reviewed).days)
        assert difficulties == [4, 5, 5]
        assert gaps == [14, 30, 30]
        assert item.correct_count == 3
        assert item.total_count == 3

    def test_wrong_answer_lowers_difficulty(self, scheduler):
        item_id = scheduler.add_item(ReviewType.TERM, "llm").item.id
        scheduler.record_outcome(item_id, True)
        item = scheduler.record_outcome(item_id, False).item
        assert item.accuracy == 0.5
        assert item.difficulty == 3

    def test_unknown_item(self, scheduler):
        assert scheduler.record_outcome("nope", True).status == OperationStatus.NOT_FOUND


class TestDueReviews:
    def test_due_items_most_overdue_first(self, scheduler, clock):
        first = scheduler.add_item(ReviewType.QUIZ, 1).item
        clock.advance(days=1)
        second = scheduler.add_item(ReviewType.QUIZ, 2).item

        clock.advance(days=6, hours=12)
        assert [i.id for i in scheduler.get_due_reviews()] == [first.id]

        clock.advance(days=3)
        assert [i.id for i in scheduler.get_due_reviews()] == [first.id, second.id]

    def test_deactivated_items_are_never_due(self, scheduler, clock):
        item = scheduler.add_item(ReviewType.QUIZ, 1).item
        assert scheduler.deactivate(item.id).status == OperationStatus.APPLIED
        assert scheduler.deactivate(item.id).status == OperationStatus.NOOP
        clock.advance(days=30)
        assert scheduler.get_due_reviews() == []
        assert scheduler.get_item(item.id) is not None

    def test_failed_write(self, scheduler, store):
        store.fail_writes = True
        assert scheduler.add_item(ReviewType.QUIZ, 1).status == OperationStatus.FAILED
        store.fail_writes = False
        assert scheduler.list_items() == []

    def test_naive_now_uses_clock_timezone(self, scheduler, clock):
        item = scheduler.add_item(ReviewType.QUIZ, 1).item
        naive = (clock.now() + timedelta(days=8)).replace(tzinfo=None)
        assert [i.id for i in scheduler.get_due_reviews(naive)] == [item.id]
