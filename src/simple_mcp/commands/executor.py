"""Subprocess execution of materialized commands with a hard timeout."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import tempfile
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from simple_mcp.commands.templating import TemplateError, materialize
from simple_mcp.errors import SimpleMcpError
from simple_mcp.models import CommandSpec

logger = logging.getLogger(__name__)

DEFAULT_WORKDIR = Path(tempfile.gettempdir())
NO_EXIT_CODE = -1
_REAP_SECONDS = 2


class CommandError(SimpleMcpError):
    """Execution-level failure of a command."""


class CommandTimeoutError(CommandError):
    """Command exceeded its wall-clock budget and was killed."""


class CommandFailedError(CommandError):
    """Command ran but exited with a non-zero status."""


class CommandSpawnError(CommandError):
    """Command could not be started."""


@dataclass(slots=True)
class CommandResult:
    """Outcome of one command invocation.

    ``exit_code`` is ``0`` on success, the process's own code on a non-zero
    exit and ``-1`` when no valid exit code exists (timeout, spawn failure,
    template error). ``error`` is ``None`` only on success.
    """

    output: str
    exit_code: int
    duration: timedelta
    error: SimpleMcpError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def execute_command(
    spec: CommandSpec,
    params: Mapping[str, object] | None = None,
    workdir: str | Path | None = None,
) -> CommandResult:
    """Render ``spec.command`` with ``params`` and run it via ``sh -c``."""

    started = time.monotonic()
    try:
        materialized = materialize(spec.command, params)
    except TemplateError as error:
        return CommandResult(output="", exit_code=NO_EXIT_CODE, duration=timedelta(0), error=error)

    timeout = spec.effective_timeout
    cwd = Path(workdir) if workdir else DEFAULT_WORKDIR
    try:
        process = subprocess.Popen(  # noqa: S603
            ["sh", "-c", materialized.command],  # noqa: S607
            cwd=cwd,
            env=materialized.build_env(os.environ),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
    except OSError as error:
        return CommandResult(
            output="",
            exit_code=NO_EXIT_CODE,
            duration=_since(started),
            error=CommandSpawnError(f"failed to start command in {cwd}: {error}"),
        )

    try:
        raw_output, _ = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        raw_output = _kill_and_collect(process)
        return CommandResult(
            output=_decode(raw_output),
            exit_code=NO_EXIT_CODE,
            duration=_since(started),
            error=CommandTimeoutError(f"command timed out after {timeout} seconds"),
        )

    output = _decode(raw_output)
    returncode = process.returncode
    if returncode == 0:
        return CommandResult(output=output, exit_code=0, duration=_since(started))
    if returncode < 0:
        error: CommandError = CommandFailedError(
            f"command failed: terminated by signal {-returncode}",
        )
        returncode = NO_EXIT_CODE
    else:
        error = CommandFailedError(f"command failed: exit status {returncode}")
    return CommandResult(
        output=output,
        exit_code=returncode,
        duration=_since(started),
        error=error,
    )


def count_lines(text: str) -> int:
    if not text:
        return 0
    return text.count("\n") + 1


def _kill_and_collect(process: subprocess.Popen[bytes]) -> bytes:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except OSError:
        process.kill()
    try:
        raw_output, _ = process.communicate(timeout=_REAP_SECONDS)
    except subprocess.TimeoutExpired:
        # a descendant left the process group and still holds the pipe
        logger.warning("Timed out command %s did not release its output pipe", process.pid)
        process.wait()
        return b""
    return raw_output or b""


def _decode(raw: bytes | None) -> str:
    return (raw or b"").decode("utf-8", errors="replace")


def _since(started: float) -> timedelta:
    return timedelta(seconds=time.monotonic() - started)
