"""Domain models for tracked asynchronous jobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

TASK_URI_PREFIX = "simple-mcp://tasks/"


class JobStatus(str, Enum):
    """Linear job lifecycle: pending -> running -> completed | failed."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {
    JobStatus.PENDING: 0,
    JobStatus.RUNNING: 1,
    JobStatus.COMPLETED: 2,
    JobStatus.FAILED: 2,
}


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


@dataclass(slots=True)
class JobRecord:
    """State of a single background job."""

    task_id: str
    job_type: str
    status: JobStatus
    message: str
    start_time: datetime
    end_time: datetime | None = None

    @property
    def uri(self) -> str:
        return f"{TASK_URI_PREFIX}{self.task_id}"

    def elapsed(self, *, now: datetime | None = None) -> timedelta:
        """Total duration for finished jobs, time since start otherwise."""

        if self.status.is_terminal:
            if self.end_time is None:
                return timedelta(0)
            return self.end_time - self.start_time
        return (now or utc_now()) - self.start_time

    def format_status(self, *, now: datetime | None = None) -> str:
        """Human-readable snapshot returned to polling agents."""

        duration = format_duration(self.elapsed(now=now))
        if self.status is JobStatus.COMPLETED:
            return f"Status: {self.status.value}\nCompleted In: {duration}\nOutput: {self.message}"
        if self.status is JobStatus.FAILED:
            return f"Status: {self.status.value}\nFailed After: {duration}\nError: {self.message}"
        return f"Status: {self.status.value}\nRunning For: {duration}\nMessage: {self.message}"


def format_duration(value: timedelta) -> str:
    """Render a duration truncated to whole seconds, e.g. ``1h2m3s``."""

    total = max(0, int(value.total_seconds()))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def strip_task_uri(value: str) -> str:
    """Accept either a bare task id or a ``simple-mcp://tasks/<id>`` URI."""

    value = value.strip()
    if value.startswith(TASK_URI_PREFIX):
        return value[len(TASK_URI_PREFIX) :]
    return value
