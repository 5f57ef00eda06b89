"""
Notification models.

ScheduledNotification: one row per notification attempt; sent_at is set only
on real delivery (snoozed rows are closed with sent=True and no sent_at).
UserNotificationPreferences: per-user snooze deadline, due-card opt-in and the
clock rules (timezone, quiet hours, active hours, send time) for due-card pushes.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..domain.notifications import (
    DEFAULT_TIMEZONE,
    TIME_PREFERENCE_FIELDS,
    NotificationPreferences,
    ScheduledNotification as ScheduledNotificationView,
)
from ..domain.review_state import ensure_utc
from .base import Base, TimestampMixin


class ScheduledNotification(Base, TimestampMixin):
    __tablename__ = "scheduled_notifications"
    __table_args__ = (
        Index("ix_scheduled_notifications_user_type", "user_id", "type", "scheduled_for"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    scheduled_for: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def to_view(self) -> ScheduledNotificationView:
        return ScheduledNotificationView(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            scheduled_for=ensure_utc(self.scheduled_for),
            sent=self.sent,
            sent_at=ensure_utc(self.sent_at),
            last_error=self.last_error,
            payload=dict(self.payload or {}),
        )

    def __repr__(self) -> str:
        return (
            f"<ScheduledNotification(id={self.id}, user_id={self.user_id}, "
            f"type={self.type}, sent={self.sent})>"
        )


class UserNotificationPreferences(Base, TimestampMixin):
    __tablename__ = "user_notification_preferences"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    snoozed_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    card_due_enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    card_due_threshold: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    timezone: Mapped[str] = mapped_column(
        String(64), default=DEFAULT_TIMEZONE, nullable=False
    )
    quiet_hours_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    quiet_hours_start: Mapped[str] = mapped_column(String(5), default="22:00", nullable=False)
    quiet_hours_end: Mapped[str] = mapped_column(String(5), default="08:00", nullable=False)
    active_hours_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    active_hours_start: Mapped[str] = mapped_column(String(5), default="09:00", nullable=False)
    active_hours_end: Mapped[str] = mapped_column(String(5), default="21:00", nullable=False)
    card_due_time: Mapped[str] = mapped_column(String(5), default="09:00", nullable=False)
    send_anytime_outside_quiet_hours: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    def to_view(self) -> NotificationPreferences:
        return NotificationPreferences(
            user_id=self.user_id,
            snoozed_until=ensure_utc(self.snoozed_until),
            card_due_enabled=self.card_due_enabled,
            card_due_threshold=self.card_due_threshold,
            **{
                name: getattr(self, name)
                for name in TIME_PREFERENCE_FIELDS
                if getattr(self, name) is not None
            },
        )
