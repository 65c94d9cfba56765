"""Study event kinds and per-day activity counters."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field


class StudyKind(StrEnum):
    """Kinds of study events the tracker understands."""

    AI_INFO = "ai_info"
    QUIZ = "quiz"
    TERM = "term"
    FLASHCARD = "flashcard"
    FOCUS_SESSION = "focus_session"
    REVIEW = "review"


class DailyStats(BaseModel):
    """Activity counters for one calendar date."""

    date: date
    ai_info_count: int = Field(default=0, ge=0)
    quiz_count: int = Field(default=0, ge=0)
    quiz_correct: int = Field(default=0, ge=0)
    terms_learned: int = Field(default=0, ge=0)
    reviews_done: int = Field(default=0, ge=0)
    study_minutes: int = Field(default=0, ge=0)
    xp_earned: int = Field(default=0, ge=0)

    @property
    def studied(self) -> bool:
        return (
            self.ai_info_count + self.quiz_count + self.terms_learned
            + self.reviews_done + self.study_minutes
        ) > 0


class HeatmapCell(BaseModel):
    date: date
    value: int = Field(ge=0, le=4)
    stats: DailyStats
