from .sqlalchemy_grade_request_repository import SqlAlchemyGradeRequestRepository
from .sqlalchemy_item_repository import SqlAlchemyItemRepository
from .sqlalchemy_notification_repository import (
    SqlAlchemyNotificationRepository,
    SqlAlchemyPreferencesRepository,
)
from .sqlalchemy_review_state_repository import SqlAlchemyReviewStateRepository
from .sqlalchemy_unit_of_work import SqlAlchemyUnitOfWork

__all__ = [
    "SqlAlchemyGradeRequestRepository",
    "SqlAlchemyItemRepository",
    "SqlAlchemyNotificationRepository",
    "SqlAlchemyPreferencesRepository",
    "SqlAlchemyReviewStateRepository",
    "SqlAlchemyUnitOfWork",
]
