"""SQLAlchemy implementation of ItemRepository."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.review_state import LearningItem
from src.models.learning_item import LearningItem as LearningItemRecord

logger = logging.getLogger(__name__)


class SqlAlchemyItemRepository:
    """Concrete ItemRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_item(self, item_id: str) -> Optional[LearningItem]:
        record = await self._session.get(LearningItemRecord, item_id)
        return record.to_view() if record else None

    async def get_items(self, item_ids: Sequence[str]) -> List[LearningItem]:
        if not item_ids:
            return []
        result = await self._session.execute(
            select(LearningItemRecord).where(LearningItemRecord.id.in_(list(item_ids)))
        )
        return [record.to_view() for record in result.scalars().all()]
