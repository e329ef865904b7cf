"""
Job Registry
============

Recurring job substrate the import scheduler is built on. One job per owner,
keyed by owner id, so registering again always replaces the previous
occurrence.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..database.models import FeedJob, job_id_for
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import SchedulingError, ErrorCode


JobCallback = Callable[[int], object]


class JobRegistry(ABC):
    """Register/clear/introspect interface for per-owner recurring jobs."""

    @abstractmethod
    def register(self, job: FeedJob, first_run_at: datetime, callback: JobCallback) -> FeedJob:
        """Replace any job of ``job.owner_id`` with one first firing at ``first_run_at``."""

    @abstractmethod
    def clear(self, owner_id: int) -> None:
        """Remove the owner's job; removing a missing job is not an error."""

    @abstractmethod
    def get_job(self, owner_id: int) -> Optional[FeedJob]:
        """Current job of an owner with its next fire time, if any."""

    @abstractmethod
    def owner_ids(self) -> List[int]:
        pass

    def next_fire_time(self, owner_id: int) -> Optional[datetime]:
        job = self.get_job(owner_id)
        return job.next_fire_at if job else None

    def clear_all(self) -> None:
        for owner_id in self.owner_ids():
            self.clear(owner_id)

    def start(self) -> None:
        pass

    def shutdown(self, wait: bool = True) -> None:
        pass


class APSchedulerJobRegistry(JobRegistry):
    """JobRegistry backed by an APScheduler 3 scheduler."""

    def __init__(
        self,
        scheduler: Optional[BaseScheduler] = None,
        misfire_grace_seconds: int = 300,
    ):
        """Initialize registry.

        Args:
            scheduler: APScheduler instance (a UTC BackgroundScheduler if omitted)
            misfire_grace_seconds: How late a missed run may still start
        """
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self.misfire_grace_seconds = misfire_grace_seconds
        self.logger = get_logger_for_component("job_registry")

        self._jobs: Dict[int, FeedJob] = {}
        self._lock = threading.Lock()

    def register(self, job: FeedJob, first_run_at: datetime, callback: JobCallback) -> FeedJob:
        trigger = IntervalTrigger(
            seconds=job.interval_seconds,
            start_date=first_run_at,
            timezone=timezone.utc,
        )

        with self._lock:
            try:
                self.scheduler.add_job(
                    callback,
                    trigger=trigger,
                    args=[job.owner_id],
                    id=job.job_id,
                    name=f"Feed import for owner {job.owner_id}",
                    replace_existing=True,
                    max_instances=1,
                    coalesce=True,
                    misfire_grace_time=self.misfire_grace_seconds,
                    next_run_time=first_run_at,
                )
            except Exception as e:
                raise SchedulingError(
                    f"Could not register import job: {e}",
                    owner_id=job.owner_id,
                ) from e

            self._jobs[job.owner_id] = job

        self.logger.info(
            f"Scheduled feed import for owner {job.owner_id} every "
            f"{job.interval_seconds}s, first run at {first_run_at.isoformat()}",
            extra={"owner_id": job.owner_id},
        )
        return job.model_copy(update={"next_fire_at": first_run_at})

    def clear(self, owner_id: int) -> None:
        with self._lock:
            try:
                self.scheduler.remove_job(job_id_for(owner_id))
            except JobLookupError:
                pass
            except Exception as e:
                raise SchedulingError(
                    f"Could not clear import job: {e}", owner_id=owner_id
                ) from e
            finally:
                self._jobs.pop(owner_id, None)

        self.logger.debug(f"Cleared feed import for owner {owner_id}")

    def get_job(self, owner_id: int) -> Optional[FeedJob]:
        with self._lock:
            feed_job = self._jobs.get(owner_id)
            if feed_job is None:
                return None

            try:
                aps_job = self.scheduler.get_job(feed_job.job_id)
            except Exception as e:
                raise SchedulingError(
                    f"Could not look up import job: {e}",
                    owner_id=owner_id,
                    error_code=ErrorCode.SCHEDULER_UNAVAILABLE,
                ) from e

        if aps_job is None:
            return None

        # Jobs added before the scheduler starts have no next_run_time slot yet
        next_run = getattr(aps_job, "next_run_time", None)
        return feed_job.model_copy(update={"next_fire_at": next_run})

    def owner_ids(self) -> List[int]:
        with self._lock:
            return list(self._jobs)

    def start(self, paused: bool = False) -> None:
        if not self.scheduler.running:
            self.scheduler.start(paused=paused)
            self.logger.info("Job registry started")

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            self.logger.info("Job registry stopped")
