"""ItemRepository protocol: read access to gradable items."""

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from ..review_state import LearningItem


@runtime_checkable
class ItemRepository(Protocol):
    """Repository interface for the item collaborator (materials, flashcards)."""

    async def get_item(self, item_id: str) -> Optional[LearningItem]:
        """Look up an item by ID.

        Args:
            item_id: The item's primary key.

        Returns:
            The item, or None if not found.
        """
        ...

    async def get_items(self, item_ids: Sequence[str]) -> List[LearningItem]:
        """Look up several items at once; unknown IDs are omitted."""
        ...
