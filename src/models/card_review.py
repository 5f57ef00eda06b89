"""
Review state and grade ledger models.

CardReview: one scheduling row per (user, item, kind), optimistically locked.
GradeRequest: immutable record of an accepted grade, unique per request ID.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..domain.review_state import ReviewState, ensure_utc
from .base import Base, TimestampMixin


class CardReview(Base, TimestampMixin):
    __tablename__ = "card_reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "item_id", "item_kind", name="uq_card_review_key"),
        Index("ix_card_reviews_due", "suspended", "next_review_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("learning_items.id", ondelete="CASCADE"), nullable=False
    )
    item_kind: Mapped[str] = mapped_column(String(32), nullable=False)
    folder_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # SM-2 state
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lapses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_grade: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    next_review_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    last_reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    suspended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    item: Mapped["LearningItem"] = relationship(  # noqa: F821
        "LearningItem", back_populates="card_reviews"
    )

    __mapper_args__ = {"version_id_col": version}

    def to_state(self) -> ReviewState:
        return ReviewState(
            user_id=self.user_id,
            item_id=self.item_id,
            item_kind=self.item_kind,
            next_review_at=ensure_utc(self.next_review_at),
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            repetitions=self.repetitions,
            lapses=self.lapses,
            last_reviewed_at=ensure_utc(self.last_reviewed_at),
            last_grade=self.last_grade,
            suspended=self.suspended,
            folder_id=self.folder_id,
            version=self.version,
        )

    def apply_state(self, state: ReviewState) -> None:
        """Copy mutable scheduling fields from *state*; identity is left alone."""
        self.ease_factor = state.ease_factor
        self.interval_days = state.interval_days
        self.repetitions = state.repetitions
        self.lapses = state.lapses
        self.last_grade = state.last_grade
        self.next_review_at = state.next_review_at
        self.last_reviewed_at = state.last_reviewed_at
        self.suspended = state.suspended
        self.folder_id = state.folder_id

    def __repr__(self) -> str:
        return (
            f"<CardReview(id={self.id}, user_id={self.user_id}, "
            f"item={self.item_kind}:{self.item_id}, reps={self.repetitions})>"
        )


class GradeRequest(Base):
    __tablename__ = "grade_requests"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "item_id", "request_id", name="uq_grade_request_key"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    request_id: Mapped[str] = mapped_column(String(128), nullable=False)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    resulting_state: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return (
            f"<GradeRequest(id={self.id}, user_id={self.user_id}, "
            f"item_id={self.item_id}, request_id={self.request_id})>"
        )
