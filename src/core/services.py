"""
Service Registry - Central service configuration and registration.

This module wires up the review engine, the notification tasks and the
cron manager with their dependencies. Services are registered lazily and
instantiated on first access.

Usage:
    from src.core.services import setup_services, get_service, Services

    # At startup (after init_database)
    setup_services()

    engine = get_service(Services.REVIEW_ENGINE)
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any

from .container import get_container, reset_container

logger = logging.getLogger(__name__)


# Service name constants for type safety
class Services:
    """Constants for service names."""

    SETTINGS = "settings"
    UOW_FACTORY = "uow_factory"
    REVIEW_ENGINE = "review_engine"
    DISPATCHER = "dispatcher"
    NOTIFICATION_LOCK = "notification_lock"
    DUE_ITEM_TASK = "due_item_task"
    PENDING_NOTIFICATION_TASK = "pending_notification_task"
    NOTIFICATION_PREFERENCES = "notification_preferences"
    CRON_MANAGER = "cron_manager"


def setup_services() -> None:
    """
    Register all application services in the container.

    Call this once at application startup, after init_database().
    """
    container = get_container()

    # ========================================================================
    # Core
    # ========================================================================

    def create_settings(c):
        from .config import get_settings

        return get_settings()

    container.register(Services.SETTINGS, create_settings)

    # Each call to the factory opens a new unit of work (one session)
    def create_uow_factory(c):
        from ..infrastructure.repositories import SqlAlchemyUnitOfWork
        from .database import get_session_factory

        session_factory = get_session_factory()
        return lambda: SqlAlchemyUnitOfWork(session_factory)

    container.register(Services.UOW_FACTORY, create_uow_factory)

    # ========================================================================
    # Review
    # ========================================================================

    def create_review_engine(c):
        from ..services.srs import ReviewEngine, SM2Policy

        settings = c.get(Services.SETTINGS)
        return ReviewEngine(
            c.get(Services.UOW_FACTORY),
            policy=SM2Policy(max_interval_days=settings.sm2_max_interval_days),
            retry_base_delay=settings.grade_retry_base_delay,
        )

    container.register(Services.REVIEW_ENGINE, create_review_engine)

    # ========================================================================
    # Notifications
    # ========================================================================

    def create_dispatcher(c):
        from ..services.notifications import HttpPushDispatcher, LoggingDispatcher

        settings = c.get(Services.SETTINGS)
        if not settings.push_gateway_url:
            logger.info("PUSH_GATEWAY_URL not set, notifications will only be logged")
            return LoggingDispatcher()
        return HttpPushDispatcher(
            settings.push_gateway_url,
            settings.cron_secret_token,
            timeout=settings.push_gateway_timeout,
        )

    container.register(Services.DISPATCHER, create_dispatcher)

    container.register(Services.NOTIFICATION_LOCK, lambda c: asyncio.Lock())

    def create_due_item_task(c):
        from ..services.notifications import DueItemNotificationTask

        settings = c.get(Services.SETTINGS)
        return DueItemNotificationTask(
            c.get(Services.UOW_FACTORY),
            c.get(Services.DISPATCHER),
            cooldown=timedelta(hours=settings.notification_cooldown_hours),
            min_items=settings.card_due_min_items,
            lock=c.get(Services.NOTIFICATION_LOCK),
        )

    container.register(Services.DUE_ITEM_TASK, create_due_item_task)

    def create_pending_task(c):
        from ..services.notifications import PendingNotificationTask

        settings = c.get(Services.SETTINGS)
        return PendingNotificationTask(
            c.get(Services.UOW_FACTORY),
            c.get(Services.DISPATCHER),
            cooldown=timedelta(hours=settings.notification_cooldown_hours),
            lock=c.get(Services.NOTIFICATION_LOCK),
        )

    container.register(Services.PENDING_NOTIFICATION_TASK, create_pending_task)

    def create_preferences_service(c):
        from ..services.notifications import NotificationPreferencesService

        settings = c.get(Services.SETTINGS)
        return NotificationPreferencesService(
            c.get(Services.UOW_FACTORY),
            cooldown=timedelta(hours=settings.notification_cooldown_hours),
        )

    container.register(Services.NOTIFICATION_PREFERENCES, create_preferences_service)

    # ========================================================================
    # Scheduling
    # ========================================================================

    def create_cron_manager(c):
        from ..services.scheduler import get_cron_manager

        return get_cron_manager()

    container.register(Services.CRON_MANAGER, create_cron_manager)

    logger.info("All services registered in container")


def get_service(name: str) -> Any:
    """
    Get a service by name from the container.

    Raises:
        KeyError: If service is not registered
    """
    return get_container().get(name)


def reset_services() -> None:
    """
    Reset all services (useful for testing).

    This clears the container and re-registers all services.
    """
    reset_container()
    setup_services()
    logger.info("Services reset")
