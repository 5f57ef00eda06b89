"""Notification endpoints: cron entry points, preferences, snooze and cooldown reset."""

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, ConfigDict

from ..core.config import Settings
from ..core.security import secrets_match, verify_bearer_or_dev
from ..domain.errors import UnauthorizedError
from ..domain.notifications import NotificationPreferences
from ..domain.review_state import utcnow
from ..services.notifications import (
    DueItemNotificationTask,
    NotificationPreferencesService,
)
from .dependencies import (
    get_app_settings,
    get_due_item_task,
    get_optional_user_id,
    get_preferences_service,
    get_session_user_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


class SnoozeRequest(BaseModel):
    # Range is enforced by the preferences service (400 outside 60..86400)
    duration: int


class PreferencesUpdate(BaseModel):
    # Only fields present in the body are changed; values are checked by the service
    model_config = ConfigDict(extra="forbid")

    card_due_enabled: Optional[bool] = None
    card_due_threshold: Optional[int] = None
    timezone: Optional[str] = None
    quiet_hours_enabled: Optional[bool] = None
    quiet_hours_start: Optional[str] = None
    quiet_hours_end: Optional[str] = None
    active_hours_enabled: Optional[bool] = None
    active_hours_start: Optional[str] = None
    active_hours_end: Optional[str] = None
    card_due_time: Optional[str] = None
    send_anytime_outside_quiet_hours: Optional[bool] = None


def preferences_body(preferences: NotificationPreferences) -> Dict[str, Any]:
    body = asdict(preferences)
    body["snoozed_until"] = (
        preferences.snoozed_until.isoformat() if preferences.snoozed_until else None
    )
    body["is_snoozed"] = preferences.is_snoozed(utcnow())
    return body


def require_bearer_or_dev(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    verify_bearer_or_dev(authorization, settings)


@router.get("/cron/check-due-cards", dependencies=[Depends(require_bearer_or_dev)])
async def check_due_cards(
    task: DueItemNotificationTask = Depends(get_due_item_task),
) -> Dict[str, Any]:
    """Entry point for an external cron runner."""
    summary = await task.run()
    return {"success": True, **summary.to_dict()}


@router.get("/debug-cron", dependencies=[Depends(require_bearer_or_dev)])
async def debug_cron(
    task: DueItemNotificationTask = Depends(get_due_item_task),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """Run the due-card scan by hand and report the settings it ran with."""
    started_at = utcnow()
    logger.info("Manual due-card check requested via debug endpoint")
    summary = await task.run()
    return {
        "success": True,
        "started_at": started_at.isoformat(),
        "environment": settings.environment,
        "cooldown_hours": task.cooldown.total_seconds() / 3600,
        "min_items": task.min_items,
        "summary": summary.to_dict(),
    }


@router.get("/preferences")
async def get_preferences(
    user_id: str = Depends(get_session_user_id),
    service: NotificationPreferencesService = Depends(get_preferences_service),
) -> Dict[str, Any]:
    return preferences_body(await service.get_preferences(user_id))


@router.put("/preferences")
async def update_preferences(
    request: PreferencesUpdate,
    user_id: str = Depends(get_session_user_id),
    service: NotificationPreferencesService = Depends(get_preferences_service),
) -> Dict[str, Any]:
    preferences = await service.update_preferences(
        user_id, request.model_dump(exclude_unset=True)
    )
    return preferences_body(preferences)


@router.post("/snooze")
async def snooze(
    request: SnoozeRequest,
    user_id: str = Depends(get_session_user_id),
    service: NotificationPreferencesService = Depends(get_preferences_service),
) -> Dict[str, Any]:
    result = await service.snooze(user_id, request.duration)
    return {
        "success": True,
        "snoozed_until": result.snoozed_until.isoformat(),
        "duration": result.duration_seconds,
        "skipped_notifications": result.skipped_notifications,
    }


@router.post("/clear-cooldown")
async def clear_cooldown(
    x_cron_secret: Optional[str] = Header(default=None),
    user_id: Optional[str] = Depends(get_optional_user_id),
    settings: Settings = Depends(get_app_settings),
    service: NotificationPreferencesService = Depends(get_preferences_service),
) -> Dict[str, Any]:
    """Forget recent CARD_DUE rows so the next scan may notify again."""
    if not user_id and not secrets_match(x_cron_secret, settings.cron_secret_token):
        raise UnauthorizedError("Unauthorized")

    deleted = await service.clear_cooldown()
    logger.info(f"Cooldown cleared by {user_id or 'cron secret'}: {deleted} rows")
    return {"success": True, "deleted": deleted}
