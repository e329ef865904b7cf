"""
Scheduler Lock
==============

Only one ``serve`` process may schedule imports against a given database;
a second one would arm a duplicate job for every owner. The lock is an
``fcntl`` lock on a file next to the database, so services pointed at
different databases do not block each other.
"""

import fcntl
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import SchedulingError
from .logging import get_logger_for_component

LOCK_SUFFIX = ".scheduler.lock"


class SchedulerLock:
    """Exclusive scheduling rights over one database."""

    def __init__(self, lock_file: Path):
        self.lock_file = Path(lock_file)
        self._fd: Optional[int] = None
        self.logger = get_logger_for_component("scheduler_lock")

    @classmethod
    def for_database(cls, database_path: str) -> "SchedulerLock":
        db_path = Path(database_path)
        return cls(db_path.with_name(db_path.name + LOCK_SUFFIX))

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> "SchedulerLock":
        """Take the lock and record this process as the holder.

        Raises:
            SchedulingError: If another service already schedules this database
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.lock_file), os.O_CREAT | os.O_RDWR, 0o644)

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            os.close(fd)
            holder = self.holder() or {}
            raise SchedulingError(
                f"Scheduler lock {self.lock_file} is held by PID {holder.get('pid', 'unknown')}",
                context={"lock_file": str(self.lock_file), "holder": holder},
                user_message="Another importer service is already scheduling this database",
            ) from e

        record = {"pid": os.getpid(), "since": datetime.now(timezone.utc).isoformat()}
        os.ftruncate(fd, 0)
        os.write(fd, json.dumps(record).encode())
        os.fsync(fd)

        self._fd = fd
        self.logger.info(f"Scheduler lock acquired: {self.lock_file}")
        return self

    def release(self) -> None:
        if self._fd is None:
            return

        fd, self._fd = self._fd, None
        try:
            self.lock_file.unlink(missing_ok=True)
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        self.logger.info(f"Scheduler lock released: {self.lock_file}")

    def holder(self) -> Optional[Dict[str, Any]]:
        """PID and start time recorded by the holding process, if readable."""
        try:
            return json.loads(self.lock_file.read_text())
        except (OSError, ValueError):
            return None

    def __enter__(self):
        return self.acquire()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
