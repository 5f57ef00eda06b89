"""
Scheduler base types.

JobConfig describes what to run and when (static configuration).
Job is the in-memory runtime record the CronJobManager mutates on every
tick and manual trigger. JobResult is the outcome of one run.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from apscheduler.triggers.cron import CronTrigger

# A task takes no arguments; it may be sync or async and may return a summary
TaskFn = Callable[[], Union[Any, Awaitable[Any]]]


class JobState(str, enum.Enum):
    REGISTERED = "registered"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    DISABLED = "disabled"


@dataclass(frozen=True)
class JobConfig:
    """Static job definition.

    ``schedule`` is a 5-field cron expression (minute hour day month weekday)
    evaluated in ``timezone``.
    """

    schedule: str
    task_name: str
    enabled: bool = True
    timezone: str = "UTC"


@dataclass(frozen=True)
class JobResult:
    success: bool
    error: Optional[str] = None
    result: Any = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_ms(self) -> Optional[int]:
        if self.started_at is None or self.finished_at is None:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        if self.result is not None:
            to_dict = getattr(self.result, "to_dict", None)
            data["result"] = to_dict() if callable(to_dict) else self.result
        if self.duration_ms is not None:
            data["duration_ms"] = self.duration_ms
        return data


@dataclass
class Job:
    name: str
    config: JobConfig
    trigger: CronTrigger
    enabled: bool
    state: JobState = JobState.REGISTERED
    running: bool = False
    last_run_at: Optional[datetime] = None
    last_result: Optional[JobResult] = None
    run_count: int = 0
    failure_count: int = 0
    skipped_ticks: int = 0
    last_skipped_at: Optional[datetime] = None

    @property
    def task_name(self) -> str:
        return self.config.task_name

    @property
    def schedule(self) -> str:
        return self.config.schedule

    @property
    def timezone(self) -> str:
        return self.config.timezone
