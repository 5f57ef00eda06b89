"""SQLAlchemy UnitOfWork: one AsyncSession shared by all repositories."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from src.domain.errors import ConcurrencyError

from .sqlalchemy_grade_request_repository import SqlAlchemyGradeRequestRepository
from .sqlalchemy_item_repository import SqlAlchemyItemRepository
from .sqlalchemy_notification_repository import (
    SqlAlchemyNotificationRepository,
    SqlAlchemyPreferencesRepository,
)
from .sqlalchemy_review_state_repository import SqlAlchemyReviewStateRepository

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork:
    """Opens a session on enter; anything not committed is rolled back on exit."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        self._session = self._session_factory()
        self.items = SqlAlchemyItemRepository(self._session)
        self.review_states = SqlAlchemyReviewStateRepository(self._session)
        self.grade_requests = SqlAlchemyGradeRequestRepository(self._session)
        self.notifications = SqlAlchemyNotificationRepository(self._session)
        self.preferences = SqlAlchemyPreferencesRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
        finally:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("Unit of work used outside 'async with'")
        return self._session

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            raise ConcurrencyError("commit", str(e)) from e

    async def rollback(self) -> None:
        await self.session.rollback()
