"""UnitOfWork protocol: groups repositories over a single transaction."""

from typing import Protocol, runtime_checkable

from .grade_request_repository import GradeRequestRepository
from .item_repository import ItemRepository
from .notification_repository import NotificationRepository, PreferencesRepository
from .review_state_repository import ReviewStateRepository


@runtime_checkable
class UnitOfWork(Protocol):
    """Transaction boundary.

    Used as ``async with uow_factory() as uow: ...; await uow.commit()``.
    Leaving the block without commit rolls everything back.
    """

    items: ItemRepository
    review_states: ReviewStateRepository
    grade_requests: GradeRequestRepository
    notifications: NotificationRepository
    preferences: PreferencesRepository

    async def __aenter__(self) -> "UnitOfWork":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...

    async def commit(self) -> None:
        """Make all changes in this unit visible atomically."""
        ...

    async def rollback(self) -> None:
        ...
