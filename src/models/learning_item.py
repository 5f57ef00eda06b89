from typing import List, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..domain.review_state import LearningItem as LearningItemView
from .base import Base, TimestampMixin


class LearningItem(Base, TimestampMixin):
    """Gradable item (material or flashcard) owned by the content collaborator.

    Only the columns the review core reads are mapped here.
    """

    __tablename__ = "learning_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    folder_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    title: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Deleting an item removes its review states
    card_reviews: Mapped[List["CardReview"]] = relationship(  # noqa: F821
        "CardReview", back_populates="item", cascade="all, delete-orphan"
    )

    def to_view(self) -> LearningItemView:
        return LearningItemView(
            id=self.id,
            user_id=self.user_id,
            kind=self.kind,
            folder_id=self.folder_id,
            title=self.title,
        )

    def __repr__(self) -> str:
        return f"<LearningItem(id={self.id}, kind={self.kind}, user_id={self.user_id})>"
