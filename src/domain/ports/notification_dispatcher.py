"""NotificationDispatcher port -- abstracts push delivery to a user."""

from typing import Protocol, runtime_checkable

from ..notifications import NotificationContent


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Delivers a notification to every active subscription of a user."""

    async def send(self, user_id: str, content: NotificationContent) -> bool:
        """Return True when the transport accepted the notification.

        May raise on transport errors; callers treat that like False.
        """
        ...
