"""
Due-item notification task.

Scans every due, non-suspended review state, groups it by user and sends
each eligible user at most one CARD_DUE notification per cooldown window.
A user inside quiet hours, outside active hours or away from their
preferred send time is skipped with no row written, so a later tick retries.

The cooldown is read from the notification table on every run, so running
the task twice (scheduled tick plus manual trigger) cannot double-notify.
"""

import asyncio
import enum
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ...domain.notifications import (
    CARD_DUE,
    NotificationPreferences,
    ScheduledNotification,
)
from ...domain.ports import NotificationDispatcher
from ...domain.repositories import UnitOfWork
from ...domain.review_state import ReviewState, ensure_utc, utcnow
from .content import build_card_due_content

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(hours=6)


class UserOutcome(str, enum.Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DueCheckSummary:
    users_checked: int = 0
    notifications_sent: int = 0
    notifications_skipped: int = 0
    errors: int = 0

    def record(self, outcome: UserOutcome) -> None:
        if outcome is UserOutcome.SENT:
            self.notifications_sent += 1
        elif outcome is UserOutcome.SKIPPED:
            self.notifications_skipped += 1
        else:
            self.errors += 1

    def to_dict(self) -> Dict[str, int]:
        return {
            "users_checked": self.users_checked,
            "notifications_sent": self.notifications_sent,
            "notifications_skipped": self.notifications_skipped,
            "errors": self.errors,
        }


def group_by_user(states: List[ReviewState]) -> "OrderedDict[str, List[ReviewState]]":
    grouped: "OrderedDict[str, List[ReviewState]]" = OrderedDict()
    for state in states:
        grouped.setdefault(state.user_id, []).append(state)
    return grouped


async def dispatch_and_record(
    uow_factory: Callable[[], UnitOfWork],
    dispatcher: NotificationDispatcher,
    notification: ScheduledNotification,
    due_states: List[ReviewState],
    now: datetime,
) -> bool:
    """Send one notification row and persist the outcome on it.

    Returns True when the dispatcher confirmed delivery. A dispatcher
    exception is recorded on the row like a refused delivery.
    """
    content = build_card_due_content(due_states)
    try:
        delivered = await dispatcher.send(notification.user_id, content)
        error = None if delivered else "Dispatcher reported delivery failure"
    except Exception as e:
        delivered = False
        error = f"{type(e).__name__}: {e}"
        logger.error(
            f"Dispatch to user {notification.user_id} raised: {error}", exc_info=True
        )

    async with uow_factory() as uow:
        if delivered:
            await uow.notifications.mark_sent(notification.id, now)
        else:
            await uow.notifications.mark_failed(notification.id, error)
        await uow.commit()

    return delivered


class DueItemNotificationTask:
    """Cron task: notify users whose review queue has due items."""

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        dispatcher: NotificationDispatcher,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        min_items: int = 1,
        clock: Callable[[], datetime] = utcnow,
        lock: Optional[asyncio.Lock] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._dispatcher = dispatcher
        self.cooldown = cooldown
        self.min_items = max(1, min_items)
        self._clock = clock
        # Shared between the scan and the retry pass so they never interleave
        self._lock = lock or asyncio.Lock()

    async def run(self, now: Optional[datetime] = None) -> DueCheckSummary:
        """Check all users once. Runs of this instance never interleave."""
        async with self._lock:
            now = ensure_utc(now) if now is not None else self._clock()
            summary = DueCheckSummary()

            async with self._uow_factory() as uow:
                due = await uow.review_states.query_due(now)
                grouped = group_by_user(due)
                preferences = {
                    pref.user_id: pref
                    for pref in await uow.preferences.get_many(list(grouped))
                }

            logger.info(
                f"Due-card check: {len(due)} due items across {len(grouped)} users"
            )

            for user_id, states in grouped.items():
                summary.users_checked += 1
                try:
                    outcome = await self._process_user(
                        user_id, states, preferences.get(user_id), now
                    )
                except Exception as e:
                    logger.error(
                        f"Error processing due cards for user {user_id}: {e}",
                        exc_info=True,
                    )
                    outcome = UserOutcome.FAILED
                summary.record(outcome)

            logger.info(f"Due-card check completed: {summary.to_dict()}")
            return summary

    def threshold_for(self, preferences: Optional[NotificationPreferences]) -> int:
        if preferences is not None and preferences.card_due_threshold:
            return preferences.card_due_threshold
        return self.min_items

    async def _process_user(
        self,
        user_id: str,
        states: List[ReviewState],
        preferences: Optional[NotificationPreferences],
        now: datetime,
    ) -> UserOutcome:
        threshold = self.threshold_for(preferences)
        if len(states) < threshold:
            logger.debug(
                f"Skipping user {user_id}: {len(states)} due (threshold {threshold})"
            )
            return UserOutcome.SKIPPED

        if preferences is not None:
            if not preferences.card_due_enabled:
                logger.debug(f"Skipping user {user_id}: due-card notifications disabled")
                return UserOutcome.SKIPPED
            if preferences.is_snoozed(now):
                logger.info(
                    f"Skipping user {user_id}: snoozed until "
                    f"{preferences.snoozed_until.isoformat()}"
                )
                return UserOutcome.SKIPPED
            blocked = preferences.delivery_blocked_reason(now)
            if blocked:
                logger.info(f"Skipping user {user_id}: {blocked}")
                return UserOutcome.SKIPPED

        window_start = now - self.cooldown
        async with self._uow_factory() as uow:
            delivered = await uow.notifications.find_delivered_since(
                user_id, CARD_DUE, window_start
            )
            if delivered is not None:
                logger.info(
                    f"Skipping user {user_id}: already notified at "
                    f"{delivered.sent_at.isoformat()}"
                )
                return UserOutcome.SKIPPED

            # Keep a single unsent row per user inside the window
            notification = await uow.notifications.find_pending_since(
                user_id, CARD_DUE, window_start
            )
            if notification is None:
                content = build_card_due_content(states)
                notification = await uow.notifications.add(
                    ScheduledNotification(
                        user_id=user_id,
                        type=CARD_DUE,
                        scheduled_for=now,
                        payload=content.data,
                    )
                )
                await uow.commit()

        if await dispatch_and_record(
            self._uow_factory, self._dispatcher, notification, states, now
        ):
            logger.info(f"Sent due-card notification to user {user_id}")
            return UserOutcome.SENT

        logger.error(f"Failed to send due-card notification to user {user_id}")
        return UserOutcome.FAILED
