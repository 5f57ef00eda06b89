"""SQLAlchemy implementation of GradeRequestRepository."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.errors import ConcurrencyError
from src.domain.review_state import GradeRequest, ReviewState, ensure_utc
from src.models.card_review import GradeRequest as GradeRequestRecord

logger = logging.getLogger(__name__)


class SqlAlchemyGradeRequestRepository:
    """Concrete GradeRequestRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, user_id: str, item_id: str, request_id: str
    ) -> Optional[GradeRequest]:
        result = await self._session.execute(
            select(GradeRequestRecord).where(
                GradeRequestRecord.user_id == user_id,
                GradeRequestRecord.item_id == item_id,
                GradeRequestRecord.request_id == request_id,
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            return None
        return GradeRequest(
            user_id=record.user_id,
            item_id=record.item_id,
            request_id=record.request_id,
            grade=record.grade,
            resulting_state=ReviewState.from_dict(record.resulting_state),
            processed_at=ensure_utc(record.processed_at),
        )

    async def add(self, request: GradeRequest) -> None:
        self._session.add(
            GradeRequestRecord(
                user_id=request.user_id,
                item_id=request.item_id,
                request_id=request.request_id,
                grade=request.grade,
                resulting_state=request.resulting_state.to_dict(),
                processed_at=ensure_utc(request.processed_at),
            )
        )
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConcurrencyError(
                (request.user_id, request.item_id, request.request_id),
                "grade request already recorded",
            ) from e

    async def delete_older_than(self, cutoff: datetime) -> int:
        result = await self._session.execute(
            delete(GradeRequestRecord).where(
                GradeRequestRecord.processed_at < ensure_utc(cutoff)
            )
        )
        return result.rowcount or 0
