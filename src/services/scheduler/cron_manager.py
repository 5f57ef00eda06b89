"""
CronJobManager -- process-wide registry of named recurring tasks.

Jobs are declared from static configuration at startup, fire on cron
expressions through APScheduler's AsyncIOScheduler, can be triggered
manually, and expose their status. All job state lives in memory and is
discarded on shutdown.

A job never runs two overlapping instances: a tick that fires while the
previous run is still in flight is skipped and counted in the job status.
A task that raises is recorded as a failed run; the job keeps its schedule.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import structlog
from apscheduler.events import EVENT_JOB_MAX_INSTANCES, JobSubmissionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ...domain.errors import NotFoundError, TaskExecutionError, ValidationError
from .base import Job, JobConfig, JobResult, JobState, TaskFn

logger = logging.getLogger(__name__)

# A tick may fire this late (e.g. after an event loop stall) and still run
MISFIRE_GRACE_SECONDS = 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# crontab numbers days of week from Sunday (0 or 7); from_crontab counts from Monday
CRONTAB_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def _weekday_number(token: str) -> int:
    token = token.strip().lower()
    if token in CRONTAB_WEEKDAYS:
        return CRONTAB_WEEKDAYS.index(token)
    if not token.isdigit() or int(token) > 7:
        raise ValueError(f"Invalid day of week {token!r}")
    return int(token)


def crontab_weekdays(field: str) -> str:
    """Rewrite a crontab day-of-week field as a list of day names.

    Accepts ``*``, numbers 0-7, names, ``a-b`` ranges, ``/step`` and comma
    lists, e.g. ``"5-7"`` becomes ``"sun,fri,sat"``.

    Raises:
        ValueError: On a token crontab would not accept.
    """
    if field == "*":
        return field

    days = set()
    for part in field.split(","):
        span, slash, step_text = part.partition("/")
        step = int(step_text) if slash else 1
        if step < 1:
            raise ValueError(f"Invalid step in day of week {part!r}")
        if span == "*":
            first, last = 0, 6
        elif "-" in span:
            start, _, end = span.partition("-")
            first, last = _weekday_number(start), _weekday_number(end)
            if last == 0 and first > 0:
                last = 7
            if first > last:
                raise ValueError(f"Invalid day-of-week range {span!r}")
        else:
            first = _weekday_number(span)
            last = 6 if slash else first
        days.update(day % 7 for day in range(first, last + 1, step))

    return ",".join(CRONTAB_WEEKDAYS[day] for day in sorted(days))


def build_trigger(schedule: str, tz: str) -> CronTrigger:
    """Parse a 5-field crontab expression in *tz*.

    Day-of-week numbers keep their crontab meaning (0 and 7 are Sunday).

    Raises:
        ValidationError: If the expression or the timezone is invalid.
    """
    if not schedule or not schedule.strip():
        raise ValidationError("Cron schedule must not be empty")
    fields = schedule.split()
    if len(fields) != 5:
        raise ValidationError(
            f"Invalid cron expression {schedule!r}: expected 5 fields"
        )
    try:
        fields[4] = crontab_weekdays(fields[4])
        return CronTrigger.from_crontab(" ".join(fields), timezone=tz)
    except (ValueError, KeyError, TypeError) as e:
        raise ValidationError(
            f"Invalid cron schedule {schedule!r} (timezone {tz!r}): {e}"
        ) from e


class CronJobManager:
    """In-memory cron scheduler for named tasks."""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None) -> None:
        self._scheduler = scheduler
        self._tasks: Dict[str, TaskFn] = {}
        self._jobs: Dict[str, Job] = {}
        self._inflight: Set[asyncio.Future] = set()
        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started

    # -- registration -----------------------------------------------------

    def register_task(self, name: str, fn: TaskFn) -> None:
        """Bind executable logic to *name*; registering again overwrites."""
        if not name:
            raise ValidationError("Task name must not be empty")
        if not callable(fn):
            raise ValidationError(f"Task {name!r} must be callable")
        if name in self._tasks:
            logger.info(f"Task '{name}' re-registered, replacing previous handler")
        self._tasks[name] = fn

    def has_task(self, name: str) -> bool:
        return name in self._tasks

    def add_job(self, name: str, config: JobConfig) -> Job:
        """Declare a job.

        Raises:
            ValidationError: Empty name, invalid schedule or timezone, or
                a task name that has not been registered.
        """
        if not name:
            raise ValidationError("Job name must not be empty")
        if name in self._jobs:
            logger.warning(f"Job '{name}' already exists, keeping existing definition")
            return self._jobs[name]

        trigger = build_trigger(config.schedule, config.timezone)
        if config.task_name not in self._tasks:
            raise ValidationError(
                f"Task {config.task_name!r} for job {name!r} is not registered"
            )

        job = Job(
            name=name,
            config=config,
            trigger=trigger,
            enabled=config.enabled,
            state=JobState.REGISTERED if config.enabled else JobState.DISABLED,
        )
        self._jobs[name] = job

        if self._started and job.enabled:
            self._schedule(job)

        logger.info(
            f"Added job '{name}' (task={config.task_name}, schedule='{config.schedule}', "
            f"tz={config.timezone}, enabled={config.enabled})"
        )
        return job

    def load_jobs(self, configs: Iterable[Tuple[str, JobConfig]]) -> List[Job]:
        """Add a batch of ``(name, config)`` pairs."""
        return [self.add_job(name, config) for name, config in configs]

    def set_job_enabled(self, name: str, enabled: bool) -> Dict[str, Any]:
        job = self._get_job(name)
        if job.enabled == enabled:
            return self._status(job)

        job.enabled = enabled
        if enabled:
            if self._started:
                self._schedule(job)
            elif not job.running:
                job.state = JobState.REGISTERED
        else:
            self._unschedule(job)
            if not job.running:
                job.state = JobState.DISABLED

        logger.info(f"Job '{name}' {'enabled' if enabled else 'disabled'}")
        return self._status(job)

    # -- lifecycle --------------------------------------------------------

    async def start_all(self) -> None:
        """Start timers for every enabled job."""
        if self._started:
            logger.warning("Cron manager already started")
            return

        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._scheduler.add_listener(self._on_max_instances, EVENT_JOB_MAX_INSTANCES)
        self._scheduler.start()
        self._started = True

        for job in self._jobs.values():
            if job.enabled:
                self._schedule(job)

        scheduled = sum(1 for j in self._jobs.values() if j.enabled)
        logger.info(f"Cron manager started with {scheduled}/{len(self._jobs)} jobs scheduled")

    async def stop_all(self) -> None:
        """Cancel pending timers, then wait for in-flight runs to finish."""
        if not self._started:
            return

        self._scheduler.pause()
        for job in self._jobs.values():
            self._unschedule(job)

        if self._inflight:
            logger.info(f"Waiting for {len(self._inflight)} running job(s) to finish")
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._started = False

        for job in self._jobs.values():
            job.state = JobState.REGISTERED if job.enabled else JobState.DISABLED
        logger.info("Cron manager stopped")

    # -- execution --------------------------------------------------------

    async def handle_tick(self, name: str) -> None:
        """Scheduler callback for one timer tick of job *name*."""
        job = self._jobs.get(name)
        if job is None:
            logger.warning(f"Tick for unknown job '{name}' ignored")
            return
        if job.running:
            self._record_skip(job, "previous run still in progress")
            return
        await self._run_tracked(job)

    async def trigger_job(self, name: str) -> JobResult:
        """Run job *name* now, regardless of its schedule.

        Never raises: an unknown job, an overlapping run and a failing task
        are all reported through the returned JobResult.
        """
        job = self._jobs.get(name)
        if job is None:
            return JobResult(success=False, error=f"Job {name!r} not found")
        if job.running:
            self._record_skip(job, "manual trigger while running")
            return JobResult(success=False, error=f"Job {name!r} is already running")

        logger.info(f"Manually triggering job '{name}'")
        return await self._run_tracked(job)

    async def _run_tracked(self, job: Job) -> JobResult:
        # Mark running before the first await so a concurrent tick sees it
        job.running = True
        job.state = JobState.RUNNING
        run = asyncio.ensure_future(self._execute(job))
        self._inflight.add(run)
        run.add_done_callback(self._inflight.discard)
        # Shielded so that scheduler shutdown cannot cancel a run midway
        return await asyncio.shield(run)

    async def _execute(self, job: Job) -> JobResult:
        started_at = _utcnow()
        with structlog.contextvars.bound_contextvars(job=job.name):
            try:
                task = self._tasks.get(job.task_name)
                if task is None:
                    raise LookupError(f"Task {job.task_name!r} is not registered")
                value = await self._call(task)
                result = JobResult(
                    success=True,
                    result=value,
                    started_at=started_at,
                    finished_at=_utcnow(),
                )
                logger.info(
                    f"Job '{job.name}' completed in {result.duration_ms}ms"
                )
            except Exception as e:
                error = TaskExecutionError(job.name, e)
                result = JobResult(
                    success=False,
                    error=str(error),
                    started_at=started_at,
                    finished_at=_utcnow(),
                )
                job.failure_count += 1
                logger.error(f"Job '{job.name}' failed: {error}", exc_info=True)
            finally:
                job.running = False
                job.run_count += 1
                job.last_run_at = started_at
                if job.enabled:
                    job.state = JobState.SCHEDULED if self._started else JobState.REGISTERED
                else:
                    job.state = JobState.DISABLED

        job.last_result = result
        return result

    @staticmethod
    async def _call(task: TaskFn) -> Any:
        if inspect.iscoroutinefunction(task):
            return await task()
        value = await asyncio.to_thread(task)
        if inspect.isawaitable(value):
            value = await value
        return value

    def _record_skip(self, job: Job, reason: str) -> None:
        job.skipped_ticks += 1
        job.last_skipped_at = _utcnow()
        logger.warning(
            f"Job '{job.name}' tick skipped ({reason}); "
            f"{job.skipped_ticks} skipped so far"
        )

    def _on_max_instances(self, event: JobSubmissionEvent) -> None:
        job = self._jobs.get(event.job_id)
        if job is not None:
            self._record_skip(job, "scheduler max instances reached")

    def _schedule(self, job: Job) -> None:
        self._scheduler.add_job(
            self.handle_tick,
            trigger=job.trigger,
            args=[job.name],
            id=job.name,
            name=job.name,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=MISFIRE_GRACE_SECONDS,
            replace_existing=True,
        )
        if not job.running:
            job.state = JobState.SCHEDULED

    def _unschedule(self, job: Job) -> None:
        if self._scheduler is not None and self._scheduler.get_job(job.name):
            self._scheduler.remove_job(job.name)

    # -- status -----------------------------------------------------------

    def _get_job(self, name: str) -> Job:
        job = self._jobs.get(name)
        if job is None:
            raise NotFoundError("Job", name)
        return job

    def _next_run_at(self, job: Job) -> Optional[datetime]:
        if not job.enabled:
            return None
        if self._scheduler is not None and self._started:
            scheduled = self._scheduler.get_job(job.name)
            if scheduled is not None and scheduled.next_run_time is not None:
                return scheduled.next_run_time
        return job.trigger.get_next_fire_time(None, _utcnow())

    def _status(self, job: Job) -> Dict[str, Any]:
        return {
            "name": job.name,
            "task_name": job.task_name,
            "schedule": job.schedule,
            "timezone": job.timezone,
            "enabled": job.enabled,
            "state": job.state.value,
            "running": job.running,
            "last_run_at": _iso(job.last_run_at),
            "last_result": job.last_result.to_dict() if job.last_result else None,
            "next_run_at": _iso(self._next_run_at(job)),
            "run_count": job.run_count,
            "failure_count": job.failure_count,
            "skipped_ticks": job.skipped_ticks,
            "last_skipped_at": _iso(job.last_skipped_at),
        }

    def get_job(self, name: str) -> Optional[Job]:
        return self._jobs.get(name)

    def get_job_status(self, name: str) -> Dict[str, Any]:
        """Status of one job; NotFoundError if *name* is unknown."""
        return self._status(self._get_job(name))

    def get_all_jobs_status(self) -> Dict[str, Dict[str, Any]]:
        return {name: self._status(job) for name, job in self._jobs.items()}


# Global manager instance
_cron_manager: Optional[CronJobManager] = None


def get_cron_manager() -> CronJobManager:
    """Get the process-wide cron manager."""
    global _cron_manager
    if _cron_manager is None:
        _cron_manager = CronJobManager()
    return _cron_manager


def reset_cron_manager() -> None:
    """Drop the process-wide manager (useful for testing)."""
    global _cron_manager
    _cron_manager = None
