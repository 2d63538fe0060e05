"""Use-case service that runs configured commands synchronously or as jobs."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from simple_mcp.commands.executor import CommandResult, count_lines, execute_command
from simple_mcp.errors import (
    CommandExecutionError,
    JobAlreadyActiveError,
    MissingParameterError,
    UnknownCommandError,
)
from simple_mcp.jobs.ids import generate_task_id
from simple_mcp.jobs.models import JobStatus, format_duration, strip_task_uri, utc_now
from simple_mcp.jobs.registry import JobRegistry
from simple_mcp.models import CommandSpec

logger = logging.getLogger(__name__)

CommandRunner = Callable[[CommandSpec, Mapping[str, object], str | Path | None], CommandResult]


@dataclass(slots=True)
class JobHandle:
    """Returned to the caller when an async job is admitted."""

    task_id: str
    uri: str
    status_text: str


@dataclass(slots=True)
class InvocationResult:
    """Either the output of a synchronous run or a handle to a background job."""

    output: str | None = None
    job: JobHandle | None = None


class CommandService:
    """Admission control, job bookkeeping and execution for configured tools."""

    def __init__(
        self,
        *,
        tools: Iterable[CommandSpec],
        registry: JobRegistry,
        workdir: str | Path | None = None,
        runner: CommandRunner = execute_command,
        id_factory: Callable[[str], str] = generate_task_id,
    ) -> None:
        self._tools = {spec.name: spec for spec in tools}
        self.registry = registry
        self.workdir = workdir
        self._runner = runner
        self._id_factory = id_factory
        self._admission_lock = threading.Lock()

    @property
    def tools(self) -> list[CommandSpec]:
        return list(self._tools.values())

    def invoke(self, job_type: str, parameters: Mapping[str, object]) -> InvocationResult:
        """Run ``job_type`` inline, or start it in the background when async."""

        spec = self._tools.get(job_type)
        if spec is None:
            raise UnknownCommandError(f"Unknown tool: {job_type}")
        params = _bind_parameters(spec, parameters)
        logger.debug("Tool %s parameters: %s", spec.name, params)

        if spec.is_async:
            return InvocationResult(job=self._start_job(spec, params))

        result = self._runner(spec, params, self.workdir)
        if result.error is not None:
            logger.error(
                "Error executing command '%s' (Exit Code: %d): %s",
                spec.name,
                result.exit_code,
                result.error,
            )
            raise CommandExecutionError(
                f"Command failed: {result.error}. Output: {result.output}",
                output=result.output,
                exit_code=result.exit_code,
            )
        _log_success(f"tool '{spec.name}'", result)
        return InvocationResult(output=result.output)

    def get_job_status(self, task_ref: str) -> str:
        """Status snapshot for a bare task id or a ``simple-mcp://tasks/`` URI."""

        task_id = strip_task_uri(task_ref)
        record = self.registry.get(task_id)
        if record is None:
            logger.info("TaskStatus request for non-existent ID: %s", task_id)
            return f"Status: not_found\nMessage: No task found with ID: {task_id}"
        return record.format_status()

    def list_active_jobs(self) -> str:
        active = self.registry.list_active()
        if not active:
            return "No active (pending or running) tasks found."

        now = utc_now()
        blocks = [f"Found {len(active)} active tasks:\n"]
        blocks.extend(
            f"Tool: {record.job_type}\n"
            f"TaskID: {record.task_id}\n"
            f"Status: {record.status.value}\n"
            f"Running For: {format_duration(record.elapsed(now=now))}\n"
            for record in sorted(active, key=lambda record: record.start_time)
        )
        return "\n".join(blocks)

    def _start_job(self, spec: CommandSpec, params: dict[str, str]) -> JobHandle:
        with self._admission_lock:
            if self.registry.has_active_job(spec.name):
                logger.info("Rejected async task %s: task is already running.", spec.name)
                raise JobAlreadyActiveError(spec.name)
            evicted = self.registry.prepare_slot()
            if evicted is not None:
                self.registry.delete(evicted)
                logger.info("Evicted finished task %s to make room", evicted)
            task_id = self._fresh_task_id(spec.name)
            record = self.registry.create(task_id, spec.name)

        thread = threading.Thread(
            target=self._run_job,
            args=(task_id, spec, params),
            name=f"job-{task_id}",
            daemon=True,
        )
        thread.start()
        logger.info("Async tool %s started. Task URI: %s", spec.name, record.uri)
        return JobHandle(task_id=task_id, uri=record.uri, status_text=record.format_status())

    def _run_job(self, task_id: str, spec: CommandSpec, params: dict[str, str]) -> None:
        status = JobStatus.FAILED
        message = f"Async job {task_id} ended without reporting a result."
        try:
            logger.info("Starting async job %s: %s", task_id, spec.name)
            self.registry.set_status(task_id, JobStatus.RUNNING, "Job is executing...")
            result = self._runner(spec, params, self.workdir)
            if result.error is not None:
                logger.error(
                    "Async job %s finished with status: failed (Exit Code: %d)",
                    task_id,
                    result.exit_code,
                )
                message = f"{result.error}. Output: {result.output}"
            else:
                _log_success(f"async job {task_id}", result)
                status, message = JobStatus.COMPLETED, result.output
        except Exception as exc:
            logger.exception("Internal error in async job %s", task_id)
            message = f"Async job {task_id} failed with an internal server error: {exc}"
        finally:
            self.registry.set_status(task_id, status, message)

    def _fresh_task_id(self, job_type: str) -> str:
        task_id = self._id_factory(job_type)
        while self.registry.get(task_id) is not None:
            task_id = self._id_factory(job_type)
        return task_id


def _bind_parameters(spec: CommandSpec, parameters: Mapping[str, object]) -> dict[str, str]:
    bound: dict[str, str] = {}
    for name in spec.parameters:
        value = parameters.get(name)
        if value is None:
            raise MissingParameterError(f"required argument {name!r} not found")
        bound[name] = str(value)
    return bound


def _log_success(subject: str, result: CommandResult) -> None:
    logger.info(
        "Successfully executed %s, output: %d bytes, %d lines, exit code: %d, duration: %s",
        subject,
        len(result.output.encode("utf-8")),
        count_lines(result.output),
        result.exit_code,
        result.duration,
    )
