"""Thread-safe in-memory registry of asynchronous jobs.

Long-running operations such as system upgrades or reboots outlive a single
tool call. The registry keeps their state so agents can poll for progress,
recover lost task ids, and so the orchestrator can refuse to start a second
job of the same type while one is still in flight.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from simple_mcp.errors import RegistryCapacityError
from simple_mcp.jobs.models import JobRecord, JobStatus, utc_now

logger = logging.getLogger(__name__)

DEFAULT_MAX_TASKS = 20


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._condition:
            while self._writer_active or self._writers_waiting:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers:
                    self._condition.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True
        try:
            yield
        finally:
            with self._condition:
                self._writer_active = False
                self._condition.notify_all()


class JobRegistry:
    """Case-insensitive job store with admission checks and bounded retention.

    ``max_tasks`` caps the number of tracked records; ``0`` disables the cap.
    Returned records are snapshots, so callers never observe a record while
    the job thread is updating it.
    """

    def __init__(
        self,
        *,
        max_tasks: int = DEFAULT_MAX_TASKS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_tasks < 0:
            raise ValueError("max_tasks must be >= 0.")
        self.max_tasks = max_tasks
        self._clock = clock
        self._lock = ReadWriteLock()
        self._tasks: dict[str, JobRecord] = {}

    def create(self, task_id: str, job_type: str) -> JobRecord:
        """Insert a new pending record, replacing any record with the same id."""

        record = JobRecord(
            task_id=task_id,
            job_type=job_type,
            status=JobStatus.PENDING,
            message="Job has been queued.",
            start_time=self._clock(),
        )
        with self._lock.write():
            self._tasks[_key(task_id)] = record
            return replace(record)

    def get(self, task_id: str) -> JobRecord | None:
        with self._lock.read():
            record = self._tasks.get(_key(task_id))
            return replace(record) if record is not None else None

    def set_status(self, task_id: str, status: JobStatus, message: str) -> None:
        """Move a job forward; unknown ids and backward moves are ignored."""

        with self._lock.write():
            record = self._tasks.get(_key(task_id))
            if record is None:
                return
            if record.status.is_terminal or status.rank < record.status.rank:
                logger.debug(
                    "Ignoring transition %s -> %s for task %s",
                    record.status.value,
                    status.value,
                    task_id,
                )
                return
            record.status = status
            record.message = message
            if status.is_terminal:
                record.end_time = self._clock()

    def delete(self, task_id: str) -> None:
        with self._lock.write():
            self._tasks.pop(_key(task_id), None)

    def list_active(self) -> list[JobRecord]:
        """All pending or running jobs, in no particular order."""

        with self._lock.read():
            return [
                replace(record) for record in self._tasks.values() if not record.status.is_terminal
            ]

    def has_active_job(self, job_type: str) -> bool:
        with self._lock.read():
            return any(
                record.job_type == job_type and not record.status.is_terminal
                for record in self._tasks.values()
            )

    def prepare_slot(self) -> str | None:
        """Return the id of the finished job to evict before the next insert.

        Returns ``None`` while the registry is below capacity. When full, the
        terminal record with the oldest end time is chosen; the caller is
        expected to ``delete`` it. Raises ``RegistryCapacityError`` when every
        tracked job is still active.
        """

        with self._lock.read():
            if self.max_tasks == 0 or len(self._tasks) < self.max_tasks:
                return None
            finished = [
                record
                for record in self._tasks.values()
                if record.status.is_terminal and record.end_time is not None
            ]
            if not finished:
                raise RegistryCapacityError(
                    f"Task store is full ({self.max_tasks} active tasks). "
                    "Wait for a running task to finish and try again.",
                )
            oldest = min(finished, key=lambda record: record.end_time or record.start_time)
            return oldest.task_id

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._tasks)


def _key(task_id: str) -> str:
    return task_id.lower()
