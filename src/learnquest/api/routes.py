"""REST API routes for session progress, missions and reviews."""

import functools
import re

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from learnquest.clock import SystemClock
from learnquest.config import get_catalog, get_settings
from learnquest.errors import PersistenceError
from learnquest.models.activity import StudyKind
from learnquest.models.results import OperationResult, OperationStatus
from learnquest.storage.json_store import JsonFileStore
from learnquest.storage.repository import ProgressRepository
from learnquest.tracker import ProgressTracker, SessionRegistry

logger = structlog.get_logger()
router = APIRouter(prefix="/api")

_SESSION_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

_ERROR_CODES = {
    OperationStatus.INVALID: 400,
    OperationStatus.NOT_FOUND: 404,
    OperationStatus.FAILED: 503,
}


class StudyRequest(BaseModel):
    kind: StudyKind
    content_id: str | int | None = None
    is_correct: bool | None = None
    count: int = Field(default=1, ge=1)
    minutes: int = Field(default=0, ge=0)


class ReviewAnswer(BaseModel):
    is_correct: bool


@functools.lru_cache
def get_registry() -> SessionRegistry:
    """Process-wide registry backed by the configured data directory."""
    settings = get_settings()
    repository = ProgressRepository(JsonFileStore(settings.store_dir))
    return SessionRegistry(repository, get_catalog(), clock=SystemClock(settings.timezone))


def validate_session_id(session_id: str) -> str:
    if not _SESSION_ID.match(session_id):
        raise HTTPException(status_code=400, detail="Invalid session ID format")
    return session_id


def _tracker(session_id: str) -> ProgressTracker:
    return get_registry().tracker(validate_session_id(session_id))


def _respond(result: OperationResult) -> dict:
    code = _ERROR_CODES.get(result.status)
    if code is not None:
        raise HTTPException(status_code=code, detail=result.detail or result.status.value)
    return result.model_dump(mode="json")


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/sessions/{session_id}/profile")
def get_profile(session_id: str) -> dict:
    """Get the session's profile, creating it on first access."""
    tracker = _tracker(session_id)
    try:
        profile = tracker.get_profile()
    except PersistenceError as e:
        logger.error("persistence_failed", op="get_profile", session_id=session_id)
        raise HTTPException(status_code=503, detail=str(e))
    return profile.model_dump(mode="json")


@router.post("/sessions/{session_id}/study")
def record_study(session_id: str, request: StudyRequest) -> dict:
    """Record one study event and return everything it changed."""
    result = _tracker(session_id).record_study(
        request.kind,
        content_id=request.content_id,
        is_correct=request.is_correct,
        count=request.count,
        minutes=request.minutes,
    )
    return _respond(result)


@router.post("/sessions/{session_id}/check-in")
def check_in(session_id: str) -> dict:
    return _respond(_tracker(session_id).check_in())


@router.get("/sessions/{session_id}/missions")
def get_missions(session_id: str) -> list[dict]:
    """Today's missions, generated on first access of the day."""
    tracker = _tracker(session_id)
    try:
        missions = tracker.missions.get_missions()
    except PersistenceError as e:
        logger.error("persistence_failed", op="get_missions", session_id=session_id)
        raise HTTPException(status_code=503, detail=str(e))
    return [m.model_dump(mode="json") for m in missions]


@router.post("/sessions/{session_id}/missions/{mission_id}/claim")
def claim_mission(session_id: str, mission_id: str) -> dict:
    return _respond(_tracker(session_id).missions.claim(mission_id))


@router.get("/sessions/{session_id}/reviews/due")
def get_due_reviews(session_id: str) -> list[dict]:
    """Active review items due now, most overdue first."""
    tracker = _tracker(session_id)
    try:
        items = tracker.reviews.get_due_reviews()
    except PersistenceError as e:
        logger.error("persistence_failed", op="get_due_reviews", session_id=session_id)
        raise HTTPException(status_code=503, detail=str(e))
    return [item.model_dump(mode="json") for item in items]


@router.post("/sessions/{session_id}/reviews/{item_id}")
def answer_review(session_id: str, item_id: str, answer: ReviewAnswer) -> dict:
    """Record a review answer; counts as a review study event."""
    result = _tracker(session_id).record_study(
        StudyKind.REVIEW, content_id=item_id, is_correct=answer.is_correct
    )
    return _respond(result)
