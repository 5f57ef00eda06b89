"""Notification and preference repository protocols."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..notifications import NotificationPreferences, ScheduledNotification


@runtime_checkable
class NotificationRepository(Protocol):
    """Repository interface for ScheduledNotification rows."""

    async def add(self, notification: ScheduledNotification) -> ScheduledNotification:
        ...

    async def find_delivered_since(
        self, user_id: str, type_: str, since: datetime
    ) -> Optional[ScheduledNotification]:
        """Most recent notification actually delivered at or after *since*."""
        ...

    async def find_pending_since(
        self, user_id: str, type_: str, since: datetime
    ) -> Optional[ScheduledNotification]:
        """Oldest unsent notification scheduled at or after *since*."""
        ...

    async def list_pending(
        self, type_: str, now: datetime, limit: int = 50
    ) -> List[ScheduledNotification]:
        """Unsent notifications scheduled at or before *now*."""
        ...

    async def mark_sent(self, notification_id: int, sent_at: datetime) -> None:
        ...

    async def mark_failed(self, notification_id: int, error: str) -> None:
        """Record *error* and leave the row unsent for a later retry pass."""
        ...

    async def mark_skipped(self, notification_id: int, reason: str) -> None:
        """Close the row without delivering it."""
        ...

    async def skip_pending_until(
        self, user_id: str, type_: str, until: datetime, reason: str
    ) -> int:
        """Close every unsent row scheduled at or before *until*. Returns count."""
        ...

    async def delete_since(self, type_: str, since: datetime) -> int:
        """Delete rows scheduled at or after *since*. Returns count."""
        ...


@runtime_checkable
class PreferencesRepository(Protocol):
    """Repository interface for UserNotificationPreferences."""

    async def get(self, user_id: str) -> Optional[NotificationPreferences]:
        ...

    async def get_many(self, user_ids: List[str]) -> List[NotificationPreferences]:
        ...

    async def set_snoozed_until(
        self, user_id: str, until: datetime
    ) -> NotificationPreferences:
        """Create or update the user's preferences with a snooze deadline."""
        ...

    async def update(self, user_id: str, values: Dict[str, Any]) -> NotificationPreferences:
        """Create or update the user's preferences with validated field values."""
        ...
