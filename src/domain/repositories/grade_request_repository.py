"""GradeRequestRepository protocol: the idempotency ledger."""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from ..review_state import GradeRequest


@runtime_checkable
class GradeRequestRepository(Protocol):
    """Repository interface for accepted grade submissions."""

    async def get(
        self, user_id: str, item_id: str, request_id: str
    ) -> Optional[GradeRequest]:
        """Return the ledger entry for the dedup key, or None."""
        ...

    async def add(self, request: GradeRequest) -> None:
        """Record a new entry.

        Raises:
            ConcurrencyError: If the dedup key already exists.
        """
        ...

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete entries processed before *cutoff*. Returns count."""
        ...
