"""Scheduler service for periodic matching sweeps."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from talentmatch.logging import get_logger

logger = get_logger(__name__, component="scheduler")

SWEEP_JOB_ID = "matching-sweep"


class SchedulerService:
    """
    Wraps APScheduler to run the matching sweep at a fixed interval.

    The sweep runs on a background thread so the main thread stays free to
    handle signals and coordinate shutdown. The first sweep starts
    immediately.
    """

    def __init__(
        self,
        sweep_callable: Callable[[], object],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        """
        Args:
            sweep_callable: Called on each tick (e.g. orchestrator.run_sweep)
            interval_seconds: Seconds between sweeps
            shutdown_event: Set once the scheduler has shut down
            scheduler: Pre-built scheduler (for testing)
        """
        self.sweep_callable = sweep_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event

        self.scheduler = scheduler or BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": interval_seconds,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register the sweep job and start the scheduler."""
        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.sweep_callable,
            trigger=IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc),
            id=SWEEP_JOB_ID,
            name="Matching sweep",
            replace_existing=True,
            next_run_time=next_run,
        )
        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat(),
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """Stop the scheduler; with ``wait`` let a running sweep finish first."""
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self) -> None:
        """Run one sweep synchronously in the calling thread."""
        logger.info("Triggering immediate sweep", extra={"event": "scheduler.trigger_now"})
        self.sweep_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(SWEEP_JOB_ID)
        return job.next_run_time if job else None
