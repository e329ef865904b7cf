"""
Import Scheduler
================

Keeps one recurring feed import per owner on an injected JobRegistry and
re-arms a job sooner when its import run fails.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from ..database.models import FeedJob, ImportResult
from ..processing.import_run import ImportRun
from ..utils.logging import get_logger_for_component
from .job_registry import JobRegistry


class ImportScheduler:
    """Per-owner feed import scheduling."""

    def __init__(
        self,
        registry: JobRegistry,
        import_run: ImportRun,
        grace_delay_seconds: int = 60,
        recovery_delay_seconds: int = 20 * 60,
    ):
        """Initialize import scheduler.

        Args:
            registry: Job substrate
            import_run: Pipeline executed on every fire
            grace_delay_seconds: Default delay of a newly registered job
            recovery_delay_seconds: Delay before retrying after a failed run
        """
        self.registry = registry
        self.import_run = import_run
        self.grace_delay = timedelta(seconds=grace_delay_seconds)
        self.recovery_delay = timedelta(seconds=recovery_delay_seconds)
        self.logger = get_logger_for_component("import_scheduler")

        self._run_locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def register(
        self,
        owner_id: int,
        feed_url: str,
        interval_seconds: int,
        delay: Optional[timedelta] = None,
    ) -> FeedJob:
        """Clear any job of the owner and arm a new one.

        Args:
            owner_id: Feed owner
            feed_url: Feed imported on every fire
            interval_seconds: Seconds between imports
            delay: Time until the first fire; the grace delay if omitted,
                ``timedelta(0)`` for manual triggers

        Raises:
            SchedulingError: If the registry is unavailable
        """
        job = FeedJob(owner_id=owner_id, feed_url=feed_url, interval_seconds=interval_seconds)
        first_run_at = datetime.now(timezone.utc) + (self.grace_delay if delay is None else delay)

        self.registry.clear(owner_id)
        return self.registry.register(job, first_run_at, self.fire)

    def on_interval_changed(self, owner_id: int, new_interval_seconds: int) -> bool:
        """Re-register an owner's job with a new interval.

        Returns:
            True if the job was re-registered; an unchanged interval or an
            owner without a job is a no-op
        """
        job = self.registry.get_job(owner_id)
        if job is None or job.interval_seconds == new_interval_seconds:
            return False

        self.logger.info(
            f"Interval for owner {owner_id} changed "
            f"{job.interval_seconds}s -> {new_interval_seconds}s"
        )
        self.register(owner_id, job.feed_url, new_interval_seconds)
        return True

    def clear(self, owner_id: int) -> None:
        self.registry.clear(owner_id)

    def next_fire_time(self, owner_id: int) -> Optional[datetime]:
        return self.registry.next_fire_time(owner_id)

    def fire(self, owner_id: int) -> Optional[ImportResult]:
        """Run one import for the owner's current job.

        Returns:
            Import result, or None if the owner has no job or a run is already in flight

        Raises:
            SchedulingError: If the registry is unavailable
        """
        job = self.registry.get_job(owner_id)
        if job is None:
            self.logger.warning(f"No import job registered for owner {owner_id}")
            return None

        run_lock = self._run_lock(owner_id)
        if not run_lock.acquire(blocking=False):
            self.logger.warning(f"Import for owner {owner_id} already running; skipping fire")
            return None

        try:
            result = self.import_run.execute(job.feed_url, owner_id)
        finally:
            run_lock.release()

        if not result.succeeded:
            self._recover(job)
        return result

    def _recover(self, job: FeedJob) -> None:
        self.logger.warning(
            f"Import for owner {job.owner_id} failed; retrying in "
            f"{int(self.recovery_delay.total_seconds())}s",
            extra={"owner_id": job.owner_id, "feed_url": job.feed_url},
        )
        self.register(job.owner_id, job.feed_url, job.interval_seconds, delay=self.recovery_delay)

    def _run_lock(self, owner_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._run_locks.setdefault(owner_id, threading.Lock())
