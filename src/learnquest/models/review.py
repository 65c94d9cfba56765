"""Spaced-repetition review item model."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

DEFAULT_DIFFICULTY = 3
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


class ReviewType(StrEnum):
    QUIZ = "quiz"
    TERM = "term"
    AI_INFO = "ai_info"


class ReviewItem(BaseModel):
    """A studied content unit scheduled for review.

    ``difficulty`` is a retention rating: higher means better retained and a
    longer gap before the next review.
    """

    id: str
    type: ReviewType
    content_id: str | int
    difficulty: int = Field(default=DEFAULT_DIFFICULTY, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    correct_count: int = Field(default=0, ge=0)
    total_count: int = Field(default=0, ge=0)
    last_reviewed: datetime
    next_review: datetime
    is_active: bool = True

    @model_validator(mode="after")
    def _check_counts(self) -> "ReviewItem":
        if self.correct_count > self.total_count:
            raise ValueError(f"review item {self.id}: correct_count > total_count")
        if self.next_review < self.last_reviewed:
            raise ValueError(f"review item {self.id}: next_review before last_reviewed")
        return self

    @property
    def accuracy(self) -> float | None:
        """Fraction of correct outcomes, None before the first outcome."""
        if self.total_count == 0:
            return None
        return self.correct_count / self.total_count
