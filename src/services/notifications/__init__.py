"""Due-item notifications: scan, retry pass, dispatch and preferences."""

from .content import build_card_due_content
from .dispatchers import HttpPushDispatcher, LoggingDispatcher
from .due_items import DueCheckSummary, DueItemNotificationTask
from .pending import PendingNotificationTask, PendingRunSummary
from .preferences import NotificationPreferencesService, SnoozeResult

__all__ = [
    "build_card_due_content",
    "HttpPushDispatcher",
    "LoggingDispatcher",
    "DueCheckSummary",
    "DueItemNotificationTask",
    "PendingNotificationTask",
    "PendingRunSummary",
    "NotificationPreferencesService",
    "SnoozeResult",
]
