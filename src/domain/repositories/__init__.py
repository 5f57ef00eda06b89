from .grade_request_repository import GradeRequestRepository
from .item_repository import ItemRepository
from .notification_repository import NotificationRepository, PreferencesRepository
from .review_state_repository import ReviewStateRepository
from .unit_of_work import UnitOfWork

__all__ = [
    "GradeRequestRepository",
    "ItemRepository",
    "NotificationRepository",
    "PreferencesRepository",
    "ReviewStateRepository",
    "UnitOfWork",
]
