"""Shared test fixtures."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from simple_mcp.jobs import JobRecord, JobRegistry, JobStatus

CONFIG_TEMPLATE = """
apiVersion: v1
kind: DynamicContextSource
metadata:
  name: test-mcp
spec:
{body}
"""


class FakeClock:
    """Deterministic clock for registry timestamps."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def registry(clock: FakeClock) -> JobRegistry:
    return JobRegistry(max_tasks=3, clock=clock)


@pytest.fixture()
def scratch_root(tmp_path: Path) -> Path:
    root = tmp_path / "scratch"
    root.mkdir()
    return root


@pytest.fixture()
def write_config(tmp_path: Path) -> Callable[[str], Path]:
    """Write a config file whose ``spec`` section is ``body`` (already indented)."""

    def _write(body: str, name: str = "simple-mcp.yaml") -> Path:
        path = tmp_path / name
        path.write_text(CONFIG_TEMPLATE.format(body=body), encoding="utf-8")
        return path

    return _write


def wait_for_terminal(
    registry: JobRegistry,
    task_id: str,
    timeout: float = 5.0,
) -> JobRecord:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        record = registry.get(task_id)
        if record is not None and record.status in (JobStatus.COMPLETED, JobStatus.FAILED):
            return record
        time.sleep(0.02)
    raise AssertionError(f"task {task_id} did not finish within {timeout}s")


@pytest.fixture()
def wait_terminal() -> Callable[..., JobRecord]:
    return wait_for_terminal
