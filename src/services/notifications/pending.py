"""
Retry pass for CARD_DUE notifications left unsent by a failed dispatch.

Each pending row is re-checked before sending: a row whose user is now
snoozed, opted out, already notified in the window, or has nothing due is
closed as skipped. A row whose user is in quiet hours or outside active
hours stays pending for a later pass. Rows older than the cooldown window
are expired rather than retried, so a failing gateway cannot keep one row
alive forever.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from ...domain.notifications import CARD_DUE, ScheduledNotification
from ...domain.ports import NotificationDispatcher
from ...domain.repositories import UnitOfWork
from ...domain.review_state import ensure_utc, utcnow
from .due_items import DEFAULT_COOLDOWN, UserOutcome, dispatch_and_record

logger = logging.getLogger(__name__)

BATCH_SIZE = 50


@dataclass
class PendingRunSummary:
    processed: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0

    def record(self, outcome: UserOutcome) -> None:
        if outcome is UserOutcome.SENT:
            self.sent += 1
        elif outcome is UserOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    def to_dict(self) -> Dict[str, int]:
        return {
            "processed": self.processed,
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
        }


class PendingNotificationTask:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        dispatcher: NotificationDispatcher,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        batch_size: int = BATCH_SIZE,
        clock: Callable[[], datetime] = utcnow,
        lock: Optional[asyncio.Lock] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._dispatcher = dispatcher
        self.cooldown = cooldown
        self.batch_size = batch_size
        self._clock = clock
        # Shared between the scan and the retry pass so they never interleave
        self._lock = lock or asyncio.Lock()

    async def run(self, now: Optional[datetime] = None) -> PendingRunSummary:
        async with self._lock:
            now = ensure_utc(now) if now is not None else self._clock()
            summary = PendingRunSummary()

            async with self._uow_factory() as uow:
                pending = await uow.notifications.list_pending(
                    CARD_DUE, now, limit=self.batch_size
                )

            for notification in pending:
                summary.processed += 1
                try:
                    outcome = await self._retry_one(notification, now)
                except Exception as e:
                    logger.error(
                        f"Error retrying notification {notification.id}: {e}",
                        exc_info=True,
                    )
                    outcome = UserOutcome.FAILED
                summary.record(outcome)

            if summary.processed:
                logger.info(f"Pending notifications processed: {summary.to_dict()}")
            return summary

    async def _retry_one(
        self, notification: ScheduledNotification, now: datetime
    ) -> UserOutcome:
        window_start = now - self.cooldown

        async with self._uow_factory() as uow:
            reason = None
            if ensure_utc(notification.scheduled_for) < window_start:
                reason = "Expired before delivery"
            else:
                preferences = await uow.preferences.get(notification.user_id)
                if preferences is not None and not preferences.card_due_enabled:
                    reason = "Due-card notifications disabled"
                elif preferences is not None and preferences.is_snoozed(now):
                    reason = f"Snoozed until {preferences.snoozed_until.isoformat()}"
                elif preferences is not None and preferences.delivery_blocked_reason(now):
                    # Left pending; a later pass delivers it once the clock allows
                    blocked = preferences.delivery_blocked_reason(now)
                    logger.info(f"Deferred notification {notification.id}: {blocked}")
                    return UserOutcome.SKIPPED
                elif await uow.notifications.find_delivered_since(
                    notification.user_id, CARD_DUE, window_start
                ):
                    reason = "Already notified within cooldown"

            due = []
            if reason is None:
                due = await uow.review_states.query_due(now, user_id=notification.user_id)
                if not due:
                    reason = "No items due anymore"

            if reason is not None:
                await uow.notifications.mark_skipped(notification.id, reason)
                await uow.commit()
                logger.info(f"Skipped notification {notification.id}: {reason}")
                return UserOutcome.SKIPPED

        delivered = await dispatch_and_record(
            self._uow_factory, self._dispatcher, notification, due, now
        )
        return UserOutcome.SENT if delivered else UserOutcome.FAILED
