from .base import Base, TimestampMixin
from .card_review import CardReview, GradeRequest
from .learning_item import LearningItem
from .notification import ScheduledNotification, UserNotificationPreferences

__all__ = [
    "Base",
    "TimestampMixin",
    "CardReview",
    "GradeRequest",
    "LearningItem",
    "ScheduledNotification",
    "UserNotificationPreferences",
]
