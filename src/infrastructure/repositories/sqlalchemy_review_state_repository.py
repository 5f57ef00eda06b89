"""SQLAlchemy implementation of ReviewStateRepository.

Writes are guarded by the ``version`` column (``version_id_col``), so a
lost update surfaces as StaleDataError at flush time and is reported as
ConcurrencyError.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.domain.errors import ConcurrencyError
from src.domain.review_state import ReviewKey, ReviewState, ensure_utc
from src.models.card_review import CardReview

logger = logging.getLogger(__name__)


class SqlAlchemyReviewStateRepository:
    """Concrete ReviewStateRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_record(self, key: ReviewKey) -> Optional[CardReview]:
        result = await self._session.execute(
            select(CardReview).where(
                CardReview.user_id == key.user_id,
                CardReview.item_id == key.item_id,
                CardReview.item_kind == key.item_kind,
            )
        )
        return result.scalar_one_or_none()

    async def get(self, key: ReviewKey) -> Optional[ReviewState]:
        record = await self._get_record(key)
        return record.to_state() if record else None

    async def upsert(self, state: ReviewState) -> ReviewState:
        key = state.key
        record = await self._get_record(key)

        if record is None:
            if state.version != 0:
                raise ConcurrencyError(key, "row disappeared")
            record = CardReview(
                user_id=state.user_id,
                item_id=state.item_id,
                item_kind=state.item_kind,
            )
            self._session.add(record)
        elif record.version != state.version:
            raise ConcurrencyError(
                key, f"expected version {state.version}, found {record.version}"
            )

        record.apply_state(_normalized(state))

        try:
            await self._session.flush()
        except StaleDataError as e:
            raise ConcurrencyError(key, "version changed during write") from e
        except IntegrityError as e:
            raise ConcurrencyError(key, "row created by another writer") from e

        logger.debug(f"Stored review state {key} at version {record.version}")
        return record.to_state()

    async def query_due(
        self, now: datetime, user_id: Optional[str] = None
    ) -> List[ReviewState]:
        query = select(CardReview).where(
            CardReview.suspended.is_(False),
            CardReview.next_review_at <= ensure_utc(now),
        )
        if user_id is not None:
            query = query.where(CardReview.user_id == user_id)
        query = query.order_by(CardReview.next_review_at, CardReview.id)

        result = await self._session.execute(query)
        return [record.to_state() for record in result.scalars().all()]

    async def list_for_user(
        self, user_id: str, folder_id: Optional[str] = None
    ) -> List[ReviewState]:
        query = select(CardReview).where(CardReview.user_id == user_id)
        if folder_id is not None:
            query = query.where(CardReview.folder_id == folder_id)
        query = query.order_by(CardReview.next_review_at, CardReview.id)

        result = await self._session.execute(query)
        return [record.to_state() for record in result.scalars().all()]


def _normalized(state: ReviewState) -> ReviewState:
    return replace(
        state,
        next_review_at=ensure_utc(state.next_review_at),
        last_reviewed_at=ensure_utc(state.last_reviewed_at),
    )
