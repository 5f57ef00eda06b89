"""
FastAPI dependencies shared by the routers.

Services are resolved from the DI container so tests can swap any of them
with ``get_container().register_instance(...)`` or override the
dependency itself with ``app.dependency_overrides``.
"""

import logging
from typing import Optional

from fastapi import Header

from ..core.config import Settings
from ..core.services import Services, get_service
from ..domain.errors import UnauthorizedError
from ..services.notifications import (
    DueItemNotificationTask,
    NotificationPreferencesService,
)
from ..services.scheduler import CronJobManager
from ..services.srs import ReviewEngine

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


async def get_session_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> str:
    """User identity forwarded by the upstream auth layer."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("Unauthorized")
    return x_user_id.strip()


async def get_optional_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> Optional[str]:
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return None


def get_app_settings() -> Settings:
    return get_service(Services.SETTINGS)


def get_review_engine() -> ReviewEngine:
    return get_service(Services.REVIEW_ENGINE)


def get_due_item_task() -> DueItemNotificationTask:
    return get_service(Services.DUE_ITEM_TASK)


def get_preferences_service() -> NotificationPreferencesService:
    return get_service(Services.NOTIFICATION_PREFERENCES)


def get_cron_manager_dependency() -> CronJobManager:
    return get_service(Services.CRON_MANAGER)
