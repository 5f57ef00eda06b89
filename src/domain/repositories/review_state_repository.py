"""ReviewStateRepository protocol: defines review state persistence contract."""

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from ..review_state import ReviewKey, ReviewState


@runtime_checkable
class ReviewStateRepository(Protocol):
    """Repository interface for per-user, per-item scheduling state."""

    async def get(self, key: ReviewKey) -> Optional[ReviewState]:
        """Return the live state for *key*, or None if never enrolled."""
        ...

    async def upsert(self, state: ReviewState) -> ReviewState:
        """Insert or update *state*.

        ``state.version`` must equal the stored version (0 for a new row).

        Returns:
            The stored state with its version incremented.

        Raises:
            ConcurrencyError: If another writer changed or created the row first.
        """
        ...

    async def query_due(
        self, now: datetime, user_id: Optional[str] = None
    ) -> List[ReviewState]:
        """Non-suspended states with next_review_at <= now, oldest first."""
        ...

    async def list_for_user(
        self, user_id: str, folder_id: Optional[str] = None
    ) -> List[ReviewState]:
        """All states of a user, optionally restricted to one folder."""
        ...
