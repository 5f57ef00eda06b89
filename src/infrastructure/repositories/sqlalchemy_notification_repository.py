"""SQLAlchemy implementations of NotificationRepository and PreferencesRepository."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.notifications import NotificationPreferences, ScheduledNotification
from src.domain.review_state import ensure_utc
from src.models.notification import (
    ScheduledNotification as ScheduledNotificationRecord,
    UserNotificationPreferences,
)

logger = logging.getLogger(__name__)


class SqlAlchemyNotificationRepository:
    """Concrete NotificationRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, notification: ScheduledNotification) -> ScheduledNotification:
        record = ScheduledNotificationRecord(
            user_id=notification.user_id,
            type=notification.type,
            scheduled_for=ensure_utc(notification.scheduled_for),
            sent=notification.sent,
            sent_at=ensure_utc(notification.sent_at),
            last_error=notification.last_error,
            payload=dict(notification.payload),
        )
        self._session.add(record)
        await self._session.flush()
        return record.to_view()

    async def find_delivered_since(
        self, user_id: str, type_: str, since: datetime
    ) -> Optional[ScheduledNotification]:
        result = await self._session.execute(
            select(ScheduledNotificationRecord)
            .where(
                ScheduledNotificationRecord.user_id == user_id,
                ScheduledNotificationRecord.type == type_,
                ScheduledNotificationRecord.sent.is_(True),
                ScheduledNotificationRecord.sent_at.is_not(None),
                ScheduledNotificationRecord.sent_at >= ensure_utc(since),
            )
            .order_by(ScheduledNotificationRecord.sent_at.desc())
            .limit(1)
        )
        record = result.scalar_one_or_none()
        return record.to_view() if record else None

    async def find_pending_since(
        self, user_id: str, type_: str, since: datetime
    ) -> Optional[ScheduledNotification]:
        result = await self._session.execute(
            select(ScheduledNotificationRecord)
            .where(
                ScheduledNotificationRecord.user_id == user_id,
                ScheduledNotificationRecord.type == type_,
                ScheduledNotificationRecord.sent.is_(False),
                ScheduledNotificationRecord.scheduled_for >= ensure_utc(since),
            )
            .order_by(ScheduledNotificationRecord.scheduled_for)
            .limit(1)
        )
        record = result.scalar_one_or_none()
        return record.to_view() if record else None

    async def list_pending(
        self, type_: str, now: datetime, limit: int = 50
    ) -> List[ScheduledNotification]:
        result = await self._session.execute(
            select(ScheduledNotificationRecord)
            .where(
                ScheduledNotificationRecord.type == type_,
                ScheduledNotificationRecord.sent.is_(False),
                ScheduledNotificationRecord.scheduled_for <= ensure_utc(now),
            )
            .order_by(ScheduledNotificationRecord.scheduled_for)
            .limit(limit)
        )
        return [record.to_view() for record in result.scalars().all()]

    async def mark_sent(self, notification_id: int, sent_at: datetime) -> None:
        await self._session.execute(
            update(ScheduledNotificationRecord)
            .where(ScheduledNotificationRecord.id == notification_id)
            .values(sent=True, sent_at=ensure_utc(sent_at), last_error=None)
        )

    async def mark_failed(self, notification_id: int, error: str) -> None:
        await self._session.execute(
            update(ScheduledNotificationRecord)
            .where(ScheduledNotificationRecord.id == notification_id)
            .values(last_error=error)
        )

    async def mark_skipped(self, notification_id: int, reason: str) -> None:
        await self._session.execute(
            update(ScheduledNotificationRecord)
            .where(ScheduledNotificationRecord.id == notification_id)
            .values(sent=True, last_error=reason)
        )

    async def skip_pending_until(
        self, user_id: str, type_: str, until: datetime, reason: str
    ) -> int:
        result = await self._session.execute(
            update(ScheduledNotificationRecord)
            .where(
                ScheduledNotificationRecord.user_id == user_id,
                ScheduledNotificationRecord.type == type_,
                ScheduledNotificationRecord.sent.is_(False),
                ScheduledNotificationRecord.scheduled_for <= ensure_utc(until),
            )
            .values(sent=True, last_error=reason)
        )
        return result.rowcount or 0

    async def delete_since(self, type_: str, since: datetime) -> int:
        result = await self._session.execute(
            delete(ScheduledNotificationRecord).where(
                ScheduledNotificationRecord.type == type_,
                ScheduledNotificationRecord.scheduled_for >= ensure_utc(since),
            )
        )
        return result.rowcount or 0


class SqlAlchemyPreferencesRepository:
    """Concrete PreferencesRepository backed by SQLAlchemy async sessions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> Optional[NotificationPreferences]:
        record = await self._session.get(UserNotificationPreferences, user_id)
        return record.to_view() if record else None

    async def get_many(self, user_ids: List[str]) -> List[NotificationPreferences]:
        if not user_ids:
            return []
        result = await self._session.execute(
            select(UserNotificationPreferences).where(
                UserNotificationPreferences.user_id.in_(list(user_ids))
            )
        )
        return [record.to_view() for record in result.scalars().all()]

    async def set_snoozed_until(
        self, user_id: str, until: datetime
    ) -> NotificationPreferences:
        record = await self._session.get(UserNotificationPreferences, user_id)
        if record is None:
            record = UserNotificationPreferences(user_id=user_id, card_due_enabled=True)
            self._session.add(record)
        record.snoozed_until = ensure_utc(until)
        await self._session.flush()
        return record.to_view()

    async def update(self, user_id: str, values: Dict[str, Any]) -> NotificationPreferences:
        record = await self._session.get(UserNotificationPreferences, user_id)
        if record is None:
            record = UserNotificationPreferences(user_id=user_id, card_due_enabled=True)
            self._session.add(record)
        for name, value in values.items():
            setattr(record, name, value)
        await self._session.flush()
        return record.to_view()
