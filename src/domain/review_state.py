"""Review state value object shared by the scheduler, the engine and storage."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DEFAULT_EASE_FACTOR = 2.5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class ReviewKey:
    """Identity of a review state: one per user, item and item kind."""

    user_id: str
    item_id: str
    item_kind: str

    def __str__(self) -> str:
        return f"{self.user_id}/{self.item_kind}:{self.item_id}"


@dataclass(frozen=True)
class ReviewState:
    """Scheduling state of one learning item for one user."""

    user_id: str
    item_id: str
    item_kind: str
    next_review_at: datetime
    ease_factor: float = DEFAULT_EASE_FACTOR
    interval_days: int = 0
    repetitions: int = 0
    lapses: int = 0
    last_reviewed_at: Optional[datetime] = None
    last_grade: Optional[int] = None
    suspended: bool = False
    folder_id: Optional[str] = None
    version: int = 0

    @classmethod
    def new(
        cls,
        user_id: str,
        item_id: str,
        item_kind: str,
        now: Optional[datetime] = None,
        folder_id: Optional[str] = None,
        ease_factor: float = DEFAULT_EASE_FACTOR,
    ) -> "ReviewState":
        """Default state for a freshly enrolled item, due immediately."""
        return cls(
            user_id=user_id,
            item_id=item_id,
            item_kind=item_kind,
            next_review_at=now or utcnow(),
            ease_factor=ease_factor,
            folder_id=folder_id,
        )

    @property
    def key(self) -> ReviewKey:
        return ReviewKey(self.user_id, self.item_id, self.item_kind)

    def is_due(self, now: datetime) -> bool:
        """Due when not suspended and next_review_at <= now (inclusive)."""
        return not self.suspended and ensure_utc(self.next_review_at) <= ensure_utc(now)

    def with_suspended(self, suspended: bool) -> "ReviewState":
        return replace(self, suspended=suspended)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for field_name in ("next_review_at", "last_reviewed_at"):
            value = data[field_name]
            data[field_name] = ensure_utc(value).isoformat() if value else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewState":
        values = dict(data)
        for field_name in ("next_review_at", "last_reviewed_at"):
            raw = values.get(field_name)
            if isinstance(raw, str):
                values[field_name] = datetime.fromisoformat(raw)
        return cls(**values)


@dataclass(frozen=True)
class GradeRequest:
    """Ledger entry for one accepted grade submission (immutable)."""

    user_id: str
    item_id: str
    request_id: str
    grade: int
    resulting_state: ReviewState
    processed_at: datetime


@dataclass(frozen=True)
class LearningItem:
    """Read-only view of a gradable item owned by the content collaborator."""

    id: str
    user_id: str
    kind: str
    folder_id: Optional[str] = None
    title: Optional[str] = None
