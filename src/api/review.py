import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..domain.review_state import ReviewState
from ..services.srs import ReviewEngine
from .dependencies import get_review_engine, get_session_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/review", tags=["review"])


# Request/Response models
class ItemRef(BaseModel):
    item_id: str = Field(min_length=1)
    item_kind: str = Field(min_length=1)


class EnrollRequest(ItemRef):
    folder_id: Optional[str] = None


class GradeRequestBody(ItemRef):
    grade: int
    request_id: str = Field(min_length=1)


class ReviewStateResponse(BaseModel):
    item_id: str
    item_kind: str
    folder_id: Optional[str]
    next_review_at: str
    ease_factor: float
    interval_days: int
    repetitions: int
    lapses: int
    last_reviewed_at: Optional[str]
    last_grade: Optional[int]
    suspended: bool

    @classmethod
    def from_state(cls, state: ReviewState) -> "ReviewStateResponse":
        data = state.to_dict()
        return cls(**{name: data[name] for name in cls.model_fields})


class QueueResponse(BaseModel):
    items: List[ReviewStateResponse]
    stats: Dict[str, int]


@router.post("/enroll", response_model=ReviewStateResponse)
async def enroll(
    request: EnrollRequest,
    user_id: str = Depends(get_session_user_id),
    engine: ReviewEngine = Depends(get_review_engine),
) -> ReviewStateResponse:
    state = await engine.enroll(
        user_id, request.item_id, request.item_kind, folder_id=request.folder_id
    )
    return ReviewStateResponse.from_state(state)


@router.post("/grade", response_model=ReviewStateResponse)
async def grade(
    request: GradeRequestBody,
    user_id: str = Depends(get_session_user_id),
    engine: ReviewEngine = Depends(get_review_engine),
) -> ReviewStateResponse:
    """Record a grade; resubmitting the same request_id returns the first result."""
    state = await engine.submit_grade(
        user_id,
        request.item_id,
        request.item_kind,
        request.grade,
        request.request_id,
    )
    return ReviewStateResponse.from_state(state)


@router.get("/queue", response_model=QueueResponse)
async def queue(
    limit: int = Query(default=20),
    folder_id: Optional[str] = Query(default=None),
    user_id: str = Depends(get_session_user_id),
    engine: ReviewEngine = Depends(get_review_engine),
) -> QueueResponse:
    review_queue = await engine.get_review_queue(user_id, limit=limit, folder_id=folder_id)
    return QueueResponse(
        items=[ReviewStateResponse.from_state(s) for s in review_queue.items],
        stats=review_queue.stats.to_dict(),
    )


@router.get("/stats")
async def stats(
    folder_id: Optional[str] = Query(default=None),
    user_id: str = Depends(get_session_user_id),
    engine: ReviewEngine = Depends(get_review_engine),
) -> Dict[str, int]:
    review_queue = await engine.get_review_queue(user_id, folder_id=folder_id)
    return review_queue.stats.to_dict()


@router.get("/enrollment-status")
async def enrollment_status(
    item_ids: str = Query(..., description="Comma-separated item IDs"),
    user_id: str = Depends(get_session_user_id),
    engine: ReviewEngine = Depends(get_review_engine),
) -> Dict[str, Any]:
    ids = [item_id.strip() for item_id in item_ids.split(",") if item_id.strip()]
    return {"enrolled": await engine.get_enrollment_status(user_id, ids)}


@router.post("/suspend", response_model=ReviewStateResponse)
async def suspend(
    request: ItemRef,
    user_id: str = Depends(get_session_user_id),
    engine: ReviewEngine = Depends(get_review_engine),
) -> ReviewStateResponse:
    state = await engine.suspend(user_id, request.item_id, request.item_kind)
    return ReviewStateResponse.from_state(state)


@router.post("/unsuspend", response_model=ReviewStateResponse)
async def unsuspend(
    request: ItemRef,
    user_id: str = Depends(get_session_user_id),
    engine: ReviewEngine = Depends(get_review_engine),
) -> ReviewStateResponse:
    state = await engine.unsuspend(user_id, request.item_id, request.item_kind)
    return ReviewStateResponse.from_state(state)
