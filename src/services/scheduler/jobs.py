"""
Built-in cron tasks and their job definitions.

Task names double as job names:

- check-due-cards: due-item notification scan (default every 4 hours)
- process-notifications: retry pass over unsent notifications
- prune-grade-requests: grade ledger retention
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Tuple

from ...core.config import Settings
from ...core.container import ServiceContainer
from ...core.services import Services
from ...domain.review_state import utcnow
from .base import JobConfig
from .cron_manager import CronJobManager

logger = logging.getLogger(__name__)

CHECK_DUE_CARDS = "check-due-cards"
PROCESS_NOTIFICATIONS = "process-notifications"
PRUNE_GRADE_REQUESTS = "prune-grade-requests"


def register_default_tasks(manager: CronJobManager, container: ServiceContainer) -> None:
    """Bind the built-in task names to services resolved from *container*."""
    settings: Settings = container.get(Services.SETTINGS)

    manager.register_task(CHECK_DUE_CARDS, container.get(Services.DUE_ITEM_TASK).run)
    manager.register_task(
        PROCESS_NOTIFICATIONS, container.get(Services.PENDING_NOTIFICATION_TASK).run
    )

    engine = container.get(Services.REVIEW_ENGINE)
    retention = timedelta(days=settings.grade_request_retention_days)

    async def prune_grade_requests() -> Dict[str, Any]:
        deleted = await engine.prune_grade_requests(utcnow() - retention)
        return {"deleted": deleted}

    manager.register_task(PRUNE_GRADE_REQUESTS, prune_grade_requests)


def default_job_configs(settings: Settings) -> List[Tuple[str, JobConfig]]:
    tz = settings.cron_check_due_cards_timezone
    return [
        (
            CHECK_DUE_CARDS,
            JobConfig(
                schedule=settings.cron_check_due_cards_schedule,
                task_name=CHECK_DUE_CARDS,
                timezone=tz,
            ),
        ),
        (
            PROCESS_NOTIFICATIONS,
            JobConfig(
                schedule=settings.cron_process_notifications_schedule,
                task_name=PROCESS_NOTIFICATIONS,
                timezone=tz,
            ),
        ),
        (
            PRUNE_GRADE_REQUESTS,
            JobConfig(
                schedule=settings.cron_prune_ledger_schedule,
                task_name=PRUNE_GRADE_REQUESTS,
                timezone=tz,
            ),
        ),
    ]
