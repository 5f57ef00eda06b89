"""Domain port protocols for decoupling services from infrastructure."""

from .notification_dispatcher import NotificationDispatcher

__all__ = ["NotificationDispatcher"]
