"""Asynchronous job tracking and orchestration."""

from simple_mcp.jobs.ids import generate_task_id
from simple_mcp.jobs.models import TASK_URI_PREFIX, JobRecord, JobStatus, format_duration
from simple_mcp.jobs.registry import JobRegistry
from simple_mcp.jobs.service import CommandService, InvocationResult, JobHandle

__all__ = [
    "TASK_URI_PREFIX",
    "CommandService",
    "InvocationResult",
    "JobHandle",
    "JobRecord",
    "JobRegistry",
    "JobStatus",
    "format_duration",
    "generate_task_id",
]
