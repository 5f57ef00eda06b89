"""Notification value objects used by the due-item task and preferences."""

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .review_state import ensure_utc

CARD_DUE = "CARD_DUE"

DEFAULT_TIMEZONE = "UTC"
# Minutes either side of card_due_time in which a due-card push may go out
SEND_WINDOW_MINUTES = 15
MINUTES_PER_DAY = 24 * 60

# Clock rules stored per user alongside the snooze deadline
TIME_PREFERENCE_FIELDS = (
    "timezone",
    "quiet_hours_enabled",
    "quiet_hours_start",
    "quiet_hours_end",
    "active_hours_enabled",
    "active_hours_start",
    "active_hours_end",
    "card_due_time",
    "send_anytime_outside_quiet_hours",
)


def parse_clock(value: str) -> int:
    """Minutes after midnight for an ``HH:MM`` string.

    Raises:
        ValueError: If *value* is not a valid 24-hour clock time.
    """
    hours, sep, minutes = str(value).partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit() or len(minutes) != 2:
        raise ValueError(f"Expected HH:MM, got {value!r}")
    hour, minute = int(hours), int(minutes)
    if hour > 23 or minute > 59:
        raise ValueError(f"Expected HH:MM, got {value!r}")
    return hour * 60 + minute


def in_clock_range(minute: int, start: str, end: str) -> bool:
    """Inclusive range check; a start after the end wraps past midnight."""
    first, last = parse_clock(start), parse_clock(end)
    if first <= last:
        return first <= minute <= last
    return minute >= first or minute <= last


def minutes_apart(minute: int, target: str) -> int:
    diff = abs(minute - parse_clock(target))
    return min(diff, MINUTES_PER_DAY - diff)


def resolve_zone(name: Optional[str]) -> tzinfo:
    """ZoneInfo for *name*; UTC when it is empty or unknown."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


@dataclass
class ScheduledNotification:
    """A notification record; ``sent_at`` is only set on real delivery."""

    user_id: str
    type: str
    scheduled_for: datetime
    sent: bool = False
    sent_at: Optional[datetime] = None
    last_error: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None


@dataclass
class NotificationPreferences:
    user_id: str
    snoozed_until: Optional[datetime] = None
    card_due_enabled: bool = True
    card_due_threshold: Optional[int] = None
    timezone: str = DEFAULT_TIMEZONE
    quiet_hours_enabled: bool = False
    quiet_hours_start: str = "22:00"
    quiet_hours_end: str = "08:00"
    active_hours_enabled: bool = False
    active_hours_start: str = "09:00"
    active_hours_end: str = "21:00"
    card_due_time: str = "09:00"
    send_anytime_outside_quiet_hours: bool = True

    def is_snoozed(self, now: datetime) -> bool:
        return self.snoozed_until is not None and ensure_utc(self.snoozed_until) > ensure_utc(now)

    def local_minute(self, now: datetime) -> int:
        local = ensure_utc(now).astimezone(resolve_zone(self.timezone))
        return local.hour * 60 + local.minute

    def delivery_blocked_reason(self, now: datetime) -> Optional[str]:
        """Why a due-card push may not go out at *now* in the user's timezone.

        Checked in order: quiet hours, the card_due_time window (unless
        send_anytime_outside_quiet_hours), then active hours. None means
        the clock allows sending.
        """
        minute = self.local_minute(now)
        clock = f"{minute // 60:02d}:{minute % 60:02d}"

        if self.quiet_hours_enabled and in_clock_range(
            minute, self.quiet_hours_start, self.quiet_hours_end
        ):
            return (
                f"Quiet hours {self.quiet_hours_start}-{self.quiet_hours_end} "
                f"({clock} {self.timezone})"
            )
        if (
            not self.send_anytime_outside_quiet_hours
            and minutes_apart(minute, self.card_due_time) > SEND_WINDOW_MINUTES
        ):
            return f"Outside send window around {self.card_due_time} ({clock} {self.timezone})"
        if self.active_hours_enabled and not in_clock_range(
            minute, self.active_hours_start, self.active_hours_end
        ):
            return (
                f"Outside active hours {self.active_hours_start}-{self.active_hours_end} "
                f"({clock} {self.timezone})"
            )
        return None


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str
    url: str = "/review"
    tag: str = "card-due"
    data: Dict[str, Any] = field(default_factory=dict)
