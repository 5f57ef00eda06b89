"""
Review Engine.

Applies grades to review states exactly once per request ID. Each accepted
grade writes the new ReviewState and its GradeRequest ledger entry in a
single unit of work; a retried request finds its ledger entry and gets the
stored result back without touching the scheduler again.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from ...domain.errors import ConcurrencyError, NotFoundError, ValidationError
from ...domain.repositories import UnitOfWork
from ...domain.review_state import (
    GradeRequest,
    ReviewKey,
    ReviewState,
    ensure_utc,
    utcnow,
)
from ...utils.retry import with_retry
from .srs_algorithm import DEFAULT_POLICY, SM2Policy, compute_next, validate_grade

logger = logging.getLogger(__name__)

# Repetition count from which an item is no longer "learning"
MATURE_REPETITIONS = 3


@dataclass
class QueueStats:
    total: int = 0
    new: int = 0
    due: int = 0
    learning: int = 0
    mature: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "new": self.new,
            "due": self.due,
            "learning": self.learning,
            "mature": self.mature,
        }


@dataclass
class ReviewQueue:
    items: List[ReviewState] = field(default_factory=list)
    stats: QueueStats = field(default_factory=QueueStats)


class ReviewEngine:
    """Grades, enrolls and suspends learning items for a user.

    Same-key writes are serialized in-process by a per-key asyncio.Lock and
    across processes by the optimistic ``version`` check in the repository.
    A ConcurrencyError is retried once before it reaches the caller.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        policy: SM2Policy = DEFAULT_POLICY,
        retry_base_delay: float = 0.05,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._policy = policy
        self._retry_base_delay = retry_base_delay
        self._clock = clock
        # Entries vanish once no coroutine holds the lock
        self._locks: "weakref.WeakValueDictionary[ReviewKey, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @property
    def policy(self) -> SM2Policy:
        return self._policy

    def _lock_for(self, key: ReviewKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else self._clock()

    async def _with_conflict_retry(self, func, *args):
        return await with_retry(
            func,
            *args,
            max_attempts=2,
            base_delay=self._retry_base_delay,
            exceptions=(ConcurrencyError,),
        )

    async def _require_item(self, uow: UnitOfWork, key: ReviewKey):
        item = await uow.items.get_item(key.item_id)
        if item is None or item.kind != key.item_kind or item.user_id != key.user_id:
            raise NotFoundError(key.item_kind, key.item_id)
        return item

    # -- grading ---------------------------------------------------------

    async def submit_grade(
        self,
        user_id: str,
        item_id: str,
        item_kind: str,
        grade: int,
        request_id: str,
        now: Optional[datetime] = None,
    ) -> ReviewState:
        """Apply *grade* to the item's review state once per *request_id*.

        Returns:
            The resulting state; a repeated request ID returns the state
            stored by the first accepted submission.

        Raises:
            ValidationError: Bad grade, empty request ID, or suspended item.
            NotFoundError: Unknown item.
            ConcurrencyError: Another writer won the race twice in a row.
        """
        if not request_id or not str(request_id).strip():
            raise ValidationError("request_id is required")

        key = ReviewKey(user_id, item_id, item_kind)
        async with self._lock_for(key):
            return await self._with_conflict_retry(
                self._submit_once, key, grade, request_id, self._now(now)
            )

    async def _submit_once(
        self, key: ReviewKey, grade: int, request_id: str, now: datetime
    ) -> ReviewState:
        async with self._uow_factory() as uow:
            existing = await uow.grade_requests.get(key.user_id, key.item_id, request_id)
            if existing is not None:
                logger.info(
                    f"Duplicate grade request {request_id} for {key}, "
                    f"returning stored result"
                )
                return existing.resulting_state

            grade = validate_grade(grade)
            item = await self._require_item(uow, key)

            state = await uow.review_states.get(key)
            if state is None:
                state = ReviewState.new(
                    key.user_id,
                    key.item_id,
                    key.item_kind,
                    now=now,
                    folder_id=item.folder_id,
                    ease_factor=self._policy.default_ease_factor,
                )
            if state.suspended:
                raise ValidationError(f"Cannot grade suspended item {key}")

            stored = await uow.review_states.upsert(
                compute_next(state, grade, now=now, policy=self._policy)
            )
            await uow.grade_requests.add(
                GradeRequest(
                    user_id=key.user_id,
                    item_id=key.item_id,
                    request_id=request_id,
                    grade=grade,
                    resulting_state=stored,
                    processed_at=now,
                )
            )
            await uow.commit()

        logger.info(
            f"Graded {key} with {grade}: interval={stored.interval_days}d "
            f"ef={stored.ease_factor:.2f} reps={stored.repetitions}"
        )
        return stored

    # -- enrollment and suspension ---------------------------------------

    async def enroll(
        self,
        user_id: str,
        item_id: str,
        item_kind: str,
        folder_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReviewState:
        """Create the default review state; an existing one is returned as is."""
        key = ReviewKey(user_id, item_id, item_kind)
        async with self._lock_for(key):
            return await self._with_conflict_retry(
                self._enroll_once, key, folder_id, self._now(now)
            )

    async def _enroll_once(
        self, key: ReviewKey, folder_id: Optional[str], now: datetime
    ) -> ReviewState:
        async with self._uow_factory() as uow:
            existing = await uow.review_states.get(key)
            if existing is not None:
                return existing

            item = await self._require_item(uow, key)
            stored = await uow.review_states.upsert(
                ReviewState.new(
                    key.user_id,
                    key.item_id,
                    key.item_kind,
                    now=now,
                    folder_id=folder_id or item.folder_id,
                    ease_factor=self._policy.default_ease_factor,
                )
            )
            await uow.commit()

        logger.info(f"Enrolled {key}")
        return stored

    async def suspend(self, user_id: str, item_id: str, item_kind: str) -> ReviewState:
        return await self._set_suspended(ReviewKey(user_id, item_id, item_kind), True)

    async def unsuspend(self, user_id: str, item_id: str, item_kind: str) -> ReviewState:
        return await self._set_suspended(ReviewKey(user_id, item_id, item_kind), False)

    async def _set_suspended(self, key: ReviewKey, suspended: bool) -> ReviewState:
        async with self._lock_for(key):
            return await self._with_conflict_retry(
                self._set_suspended_once, key, suspended
            )

    async def _set_suspended_once(self, key: ReviewKey, suspended: bool) -> ReviewState:
        async with self._uow_factory() as uow:
            state = await uow.review_states.get(key)
            if state is None:
                raise NotFoundError("ReviewState", str(key))
            if state.suspended is suspended:
                return state

            stored = await uow.review_states.upsert(state.with_suspended(suspended))
            await uow.commit()

        logger.info(f"{'Suspended' if suspended else 'Unsuspended'} {key}")
        return stored

    # -- queries ---------------------------------------------------------

    async def get_review_queue(
        self,
        user_id: str,
        limit: int = 20,
        folder_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReviewQueue:
        """Due, non-suspended states (oldest first) plus counts for the user."""
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        now = self._now(now)

        async with self._uow_factory() as uow:
            states = await uow.review_states.list_for_user(user_id, folder_id=folder_id)

        active = [s for s in states if not s.suspended]
        due = [s for s in active if s.is_due(now)]
        stats = QueueStats(
            total=len(active),
            new=sum(1 for s in active if s.repetitions == 0),
            due=len(due),
            learning=sum(1 for s in active if 0 < s.repetitions < MATURE_REPETITIONS),
            mature=sum(1 for s in active if s.repetitions >= MATURE_REPETITIONS),
        )
        return ReviewQueue(items=due[:limit], stats=stats)

    async def get_enrollment_status(
        self, user_id: str, item_ids: Sequence[str]
    ) -> Dict[str, bool]:
        """Map each item ID to whether the user has a review state for it."""
        async with self._uow_factory() as uow:
            states = await uow.review_states.list_for_user(user_id)
        enrolled = {s.item_id for s in states}
        return {item_id: item_id in enrolled for item_id in item_ids}

    # -- ledger retention ------------------------------------------------

    async def prune_grade_requests(self, older_than: datetime) -> int:
        """Delete ledger entries processed before *older_than*."""
        async with self._uow_factory() as uow:
            deleted = await uow.grade_requests.delete_older_than(ensure_utc(older_than))
            await uow.commit()

        if deleted:
            logger.info(f"Pruned {deleted} grade requests older than {older_than}")
        return deleted
