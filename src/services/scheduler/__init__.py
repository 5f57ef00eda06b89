"""
In-process cron scheduling for periodic tasks.

Provides:
- JobConfig / Job / JobResult / JobState types
- CronJobManager on top of APScheduler's AsyncIOScheduler
"""

from .base import Job, JobConfig, JobResult, JobState, TaskFn
from .cron_manager import (
    CronJobManager,
    build_trigger,
    get_cron_manager,
    reset_cron_manager,
)

__all__ = [
    "Job",
    "JobConfig",
    "JobResult",
    "JobState",
    "TaskFn",
    "CronJobManager",
    "build_trigger",
    "get_cron_manager",
    "reset_cron_manager",
]
