"""APScheduler wiring for periodic jobs.

The only recurring job is the watchman sweep, which is idempotent and
cheap to re-run, so jobs live in the default in-memory store and are
re-registered on every boot.

ERROR LOGGING REQUIREMENTS:
- Log job execution errors with full context
- Log missed job executions at WARNING level
- Log scheduler lifecycle events at INFO level
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from apscheduler.events import (
    EVENT_JOB_ADDED,
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    EVENT_JOB_REMOVED,
    EVENT_SCHEDULER_SHUTDOWN,
    EVENT_SCHEDULER_STARTED,
    JobEvent,
    JobExecutionEvent,
    SchedulerEvent,
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from blogforge.core.logging import get_logger, scheduler_logger

logger = get_logger(__name__)


class SchedulerState(Enum):
    """Scheduler state enumeration."""

    STOPPED = "stopped"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


@dataclass
class JobInfo:
    """Information about a scheduled job."""

    id: str
    name: str | None
    trigger: str
    next_run_time: datetime | None


class SchedulerManager:
    """Owns the process-wide AsyncIOScheduler.

    Must be started from inside a running event loop (the FastAPI
    lifespan), since AsyncIOScheduler binds to the current loop.
    """

    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None
        self._state: SchedulerState = SchedulerState.STOPPED

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    def _setup_event_listeners(self, scheduler: AsyncIOScheduler) -> None:
        def on_scheduler_event(event: SchedulerEvent) -> None:
            if event.code == EVENT_SCHEDULER_STARTED:
                scheduler_logger.scheduler_start(len(scheduler.get_jobs()))
            elif event.code == EVENT_SCHEDULER_SHUTDOWN:
                scheduler_logger.scheduler_stop(graceful=True)

        def on_job_event(event: JobEvent) -> None:
            if event.code == EVENT_JOB_ADDED:
                job = scheduler.get_job(event.job_id)
                scheduler_logger.job_added(
                    job_id=event.job_id,
                    job_name=job.name if job else None,
                    trigger=str(job.trigger) if job else "unknown",
                    next_run=(
                        job.next_run_time.isoformat()
                        if job and getattr(job, "next_run_time", None)
                        else None
                    ),
                )
            elif event.code == EVENT_JOB_REMOVED:
                scheduler_logger.job_removed(event.job_id)

        def on_job_execution_event(event: JobExecutionEvent) -> None:
            scheduled = (
                event.scheduled_run_time.isoformat() if event.scheduled_run_time else None
            )
            if event.code == EVENT_JOB_EXECUTED:
                scheduler_logger.job_execution_success(event.job_id, scheduled)
            elif event.code == EVENT_JOB_ERROR:
                scheduler_logger.job_execution_error(
                    job_id=event.job_id,
                    error=str(event.exception),
                    error_type=type(event.exception).__name__,
                )
            elif event.code == EVENT_JOB_MISSED:
                scheduler_logger.job_missed(event.job_id, scheduled or "unknown")

        scheduler.add_listener(
            on_scheduler_event, EVENT_SCHEDULER_STARTED | EVENT_SCHEDULER_SHUTDOWN
        )
        scheduler.add_listener(on_job_event, EVENT_JOB_ADDED | EVENT_JOB_REMOVED)
        scheduler.add_listener(
            on_job_execution_event,
            EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED,
        )

    def init_scheduler(self) -> AsyncIOScheduler:
        """Create the scheduler if it does not exist yet."""
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(
                job_defaults={"coalesce": True, "max_instances": 1},
                timezone="UTC",
            )
            self._setup_event_listeners(self._scheduler)
            logger.info("Scheduler initialized")
        return self._scheduler

    def add_cron_job(
        self,
        func: Callable[..., Awaitable[Any]],
        cron: str,
        job_id: str,
        name: str | None = None,
    ) -> str:
        """Register a coroutine function on a crontab expression."""
        scheduler = self.init_scheduler()
        job = scheduler.add_job(
            func,
            trigger=CronTrigger.from_crontab(cron, timezone="UTC"),
            id=job_id,
            name=name,
            replace_existing=True,
        )
        return str(job.id)

    def remove_job(self, job_id: str) -> bool:
        if self._scheduler is None:
            scheduler_logger.scheduler_not_available(
                operation="remove_job", reason="Scheduler is not initialized"
            )
            return False
        try:
            self._scheduler.remove_job(job_id)
        except LookupError:
            return False
        return True

    def get_jobs(self) -> list[JobInfo]:
        if self._scheduler is None:
            return []
        return [
            JobInfo(
                id=job.id,
                name=job.name,
                trigger=str(job.trigger),
                next_run_time=getattr(job, "next_run_time", None),
            )
            for job in self._scheduler.get_jobs()
        ]

    def start(self) -> None:
        scheduler = self.init_scheduler()
        if self._state == SchedulerState.RUNNING:
            logger.warning("Scheduler is already running")
            return
        scheduler.start()
        self._state = SchedulerState.RUNNING

    def stop(self, wait: bool = False) -> None:
        if self._scheduler is None or self._state != SchedulerState.RUNNING:
            return
        self._state = SchedulerState.SHUTTING_DOWN
        try:
            self._scheduler.shutdown(wait=wait)
        finally:
            self._state = SchedulerState.STOPPED
            self._scheduler = None

    def check_health(self) -> dict[str, Any]:
        return {
            "status": "ok" if self.is_running else "not_running",
            "running": self.is_running,
            "state": self._state.value,
            "job_count": len(self.get_jobs()),
        }


scheduler_manager = SchedulerManager()