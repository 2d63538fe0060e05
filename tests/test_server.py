from __future__ import annotations

import asyncio
import re
import time
from pathlib import Path

import allure
import pytest
from mcp.types import EmbeddedResource

from simple_mcp.config import RuntimeOptions
from simple_mcp.errors import ConfigurationError, UnknownResourceError
from simple_mcp.jobs import CommandService, JobRegistry, JobStatus
from simple_mcp.models import CommandSpec, ResourceSpec, ServerDefinition
from simple_mcp.resources import ResourceCatalog
from simple_mcp.server import UNKNOWN_TASK_TEXT, ScratchTools, ToolHandlers, build_server

pytestmark = [
    allure.epic("MCP Server"),
    allure.feature("Tool Handlers & Registration"),
]

ECHO = CommandSpec(name="Echo", command="echo {{.text}}", parameters=("text",))
UPGRADE = CommandSpec(name="Upgrade", command="echo upgraded", is_async=True)
NOTES = ResourceSpec(uri="simple-mcp://docs/notes", description="Notes", content="remember\n")


def _handlers(registry: JobRegistry | None = None) -> ToolHandlers:
    registry = registry if registry is not None else JobRegistry()
    service = CommandService(tools=[ECHO, UPGRADE], registry=registry)
    return ToolHandlers(service, ResourceCatalog([NOTES]), verbose=True)


def _options(tmp_dir: str = "", max_async_tasks: int = 20) -> RuntimeOptions:
    return RuntimeOptions(
        listen_addr="localhost:8080",
        tmp_dir=tmp_dir,
        verbose=False,
        max_async_tasks=max_async_tasks,
    )


def test_ping_answers_pong() -> None:
    assert _handlers().ping() == "pong"


def test_sync_tool_returns_output() -> None:
    assert _handlers().call("Echo", {"text": "hi there"}) == "hi there\n"


def test_async_tool_returns_task_resource(wait_terminal) -> None:
    registry = JobRegistry()
    handlers = _handlers(registry)

    result = handlers.call("Upgrade", {})

    assert isinstance(result, EmbeddedResource)
    uri = str(result.resource.uri)
    assert uri.startswith("simple-mcp://tasks/")
    assert result.resource.text.startswith("Status: pending")

    record = wait_terminal(registry, uri.removeprefix("simple-mcp://tasks/"))
    assert record.status is JobStatus.COMPLETED
    assert "Output: upgraded" in handlers.task_status(uri)


def test_task_status_for_unknown_id() -> None:
    text = _handlers().task_status("Missing-Task-Id")

    assert text == "Status: not_found\nMessage: No task found with ID: Missing-Task-Id"


def test_list_pending_tasks_when_idle() -> None:
    assert _handlers().list_pending_tasks() == "No active (pending or running) tasks found."


def test_resource_handlers() -> None:
    handlers = _handlers()

    assert handlers.get_resource("simple-mcp://docs/notes") == "remember\n"
    assert "URI: simple-mcp://docs/notes" in handlers.list_resources()
    assert "Found 1 matching resources" in handlers.search_resources("remem")
    with pytest.raises(UnknownResourceError):
        handlers.get_resource("simple-mcp://docs/missing")


def test_scratch_tools_work_inside_root(scratch_root: Path) -> None:
    tools = ScratchTools(str(scratch_root), ResourceCatalog([NOTES]))

    assert tools.create_directory("docs") == "Directory created successfully."
    assert tools.copy_resource_to_file("simple-mcp://docs/notes", "docs/notes.txt") == (
        "File created successfully."
    )
    assert tools.read_file("docs/notes.txt") == "remember\n"
    assert tools.list_directory("docs") == "notes.txt\n"


def test_build_server_registers_builtin_and_configured_tools() -> None:
    definition = ServerDefinition(
        name="test-mcp",
        api_version="v1",
        tools=(ECHO, UPGRADE),
        resources=(NOTES,),
    )

    server = build_server(definition, _options())
    names = {tool.name for tool in asyncio.run(server.list_tools())}
    resources = [str(resource.uri) for resource in asyncio.run(server.list_resources())]

    assert {"ping", "ListPendingTasks", "TaskStatus", "Echo", "Upgrade"} <= names
    assert "CreateFile" not in names
    assert any(uri.endswith("docs/notes") for uri in resources)


def test_build_server_exposes_declared_parameters() -> None:
    definition = ServerDefinition(name="test-mcp", api_version="v1", tools=(ECHO,))

    server = build_server(definition, _options())
    echo = next(tool for tool in asyncio.run(server.list_tools()) if tool.name == "Echo")

    assert echo.inputSchema["required"] == ["text"]
    assert "text" in echo.inputSchema["properties"]


def test_build_server_enables_scratch_tools(scratch_root: Path) -> None:
    definition = ServerDefinition(name="test-mcp", api_version="v1")

    server = build_server(definition, _options(str(scratch_root)))
    names = {tool.name for tool in asyncio.run(server.list_tools())}

    assert {"CreateFile", "ModifyFile", "CopyResourceTree"} <= names


def test_build_server_rejects_missing_scratch_dir(tmp_path: Path) -> None:
    definition = ServerDefinition(name="test-mcp", api_version="v1")

    with pytest.raises(ConfigurationError, match="does not exist"):
        build_server(definition, _options(str(tmp_path / "missing")))


def test_task_resources_stay_bounded_by_history_size() -> None:
    job = CommandSpec(name="Job", command="true", is_async=True)
    definition = ServerDefinition(name="test-mcp", api_version="v1", tools=(job,))
    server = build_server(definition, _options(max_async_tasks=2))

    async def wait_idle() -> None:
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            pending = await server.call_tool("ListPendingTasks", {})
            if "No active" in str(pending):
                return
            await asyncio.sleep(0.02)
        raise AssertionError("async job did not finish in time")

    async def scenario() -> tuple[list[str], list[str], str]:
        for _ in range(10):
            await server.call_tool("Job", {})
            await wait_idle()
        resources = [str(resource.uri) for resource in await server.list_resources()]
        templates = [template.uriTemplate for template in await server.list_resource_templates()]
        contents = list(await server.read_resource("simple-mcp://tasks/task-job-Gone-Long-Ago"))
        return resources, templates, contents[0].content

    resources, templates, unknown = asyncio.run(scenario())

    assert not [uri for uri in resources if "tasks/" in uri]
    assert "simple-mcp://tasks/{task_id}" in templates
    assert unknown == UNKNOWN_TASK_TEXT


def test_task_template_reports_live_status() -> None:
    job = CommandSpec(name="Job", command="echo finished", is_async=True)
    definition = ServerDefinition(name="test-mcp", api_version="v1", tools=(job,))
    server = build_server(definition, _options())

    async def scenario() -> str:
        started = str(await server.call_tool("Job", {}))
        uri = re.search(r"simple-mcp://tasks/[\w-]+", started).group(0)
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            contents = list(await server.read_resource(uri))
            if contents[0].content.startswith("Status: completed"):
                return contents[0].content
            await asyncio.sleep(0.02)
        raise AssertionError(f"{uri} did not complete in time")

    status = asyncio.run(scenario())

    assert "Output: finished" in status
