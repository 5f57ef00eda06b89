"""Preference updates, snooze and cooldown reset behind the notification endpoints."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...domain.errors import ValidationError
from ...domain.notifications import (
    CARD_DUE,
    TIME_PREFERENCE_FIELDS,
    NotificationPreferences,
    parse_clock,
)
from ...domain.repositories import UnitOfWork
from ...domain.review_state import ensure_utc, utcnow
from .due_items import DEFAULT_COOLDOWN

logger = logging.getLogger(__name__)

MIN_SNOOZE_SECONDS = 60
MAX_SNOOZE_SECONDS = 86400

BOOLEAN_FIELDS = {
    "card_due_enabled",
    "quiet_hours_enabled",
    "active_hours_enabled",
    "send_anytime_outside_quiet_hours",
}
CLOCK_FIELDS = {
    "quiet_hours_start",
    "quiet_hours_end",
    "active_hours_start",
    "active_hours_end",
    "card_due_time",
}
UPDATABLE_FIELDS = {"card_due_enabled", "card_due_threshold", *TIME_PREFERENCE_FIELDS}


def _validate_field(name: str, value: Any) -> Any:
    if name not in UPDATABLE_FIELDS:
        raise ValidationError(f"Unknown preference {name!r}")
    if name in BOOLEAN_FIELDS:
        if not isinstance(value, bool):
            raise ValidationError(f"{name} must be true or false")
        return value
    if name in CLOCK_FIELDS:
        try:
            parse_clock(value)
        except ValueError as e:
            raise ValidationError(f"{name}: {e}") from e
        return value
    if name == "timezone":
        try:
            ZoneInfo(str(value))
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValidationError(f"Unknown timezone {value!r}") from e
        return str(value)
    # card_due_threshold: None falls back to CARD_DUE_MIN_ITEMS
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("card_due_threshold must be a positive integer")
    return value


@dataclass(frozen=True)
class SnoozeResult:
    snoozed_until: datetime
    duration_seconds: int
    skipped_notifications: int


class NotificationPreferencesService:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        cooldown: timedelta = DEFAULT_COOLDOWN,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self.cooldown = cooldown
        self._clock = clock

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else self._clock()

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        async with self._uow_factory() as uow:
            preferences = await uow.preferences.get(user_id)
        return preferences or NotificationPreferences(user_id=user_id)

    async def update_preferences(
        self, user_id: str, changes: Dict[str, Any]
    ) -> NotificationPreferences:
        """Validate and store due-card settings and clock rules.

        Raises:
            ValidationError: Unknown field, unknown timezone, a time that is
                not ``HH:MM``, or a threshold below 1.
        """
        values = {name: _validate_field(name, value) for name, value in changes.items()}
        if not values:
            return await self.get_preferences(user_id)

        async with self._uow_factory() as uow:
            preferences = await uow.preferences.update(user_id, values)
            await uow.commit()

        logger.info(f"Updated notification preferences for user {user_id}: {sorted(values)}")
        return preferences

    async def snooze(
        self, user_id: str, duration_seconds: int, now: Optional[datetime] = None
    ) -> SnoozeResult:
        """Silence due-card notifications for *duration_seconds* (60..86400).

        Unsent CARD_DUE rows scheduled inside the snooze window are closed
        as skipped so the retry pass does not deliver them later.
        """
        if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int):
            raise ValidationError("Snooze duration must be an integer number of seconds")
        if not MIN_SNOOZE_SECONDS <= duration_seconds <= MAX_SNOOZE_SECONDS:
            raise ValidationError(
                f"Snooze duration must be between {MIN_SNOOZE_SECONDS} and "
                f"{MAX_SNOOZE_SECONDS} seconds"
            )

        until = self._now(now) + timedelta(seconds=duration_seconds)
        async with self._uow_factory() as uow:
            await uow.preferences.set_snoozed_until(user_id, until)
            skipped = await uow.notifications.skip_pending_until(
                user_id, CARD_DUE, until, f"Snoozed until {until.isoformat()}"
            )
            await uow.commit()

        logger.info(
            f"Snoozed notifications for user {user_id} until {until.isoformat()} "
            f"({skipped} pending skipped)"
        )
        return SnoozeResult(
            snoozed_until=until,
            duration_seconds=duration_seconds,
            skipped_notifications=skipped,
        )

    async def clear_cooldown(self, now: Optional[datetime] = None) -> int:
        """Delete CARD_DUE rows from the current cooldown window (all users)."""
        since = self._now(now) - self.cooldown
        async with self._uow_factory() as uow:
            deleted = await uow.notifications.delete_since(CARD_DUE, since)
            await uow.commit()

        logger.warning(f"Cleared {deleted} recent CARD_DUE notifications")
        return deleted
