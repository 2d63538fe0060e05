"""MCP server wiring: built-in tools, configured commands, resources and scratch tools."""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any

from anyio import to_thread
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.server.fastmcp.resources import FunctionResource
from mcp.types import EmbeddedResource, TextResourceContents

from simple_mcp import scratch
from simple_mcp.config import RuntimeOptions
from simple_mcp.errors import SimpleMcpError
from simple_mcp.jobs import TASK_URI_PREFIX, CommandService, JobRegistry
from simple_mcp.models import CommandSpec, ResourceSpec, ServerDefinition
from simple_mcp.resources import ResourceCatalog

logger = logging.getLogger(__name__)

TEXT_MIME_TYPE = "text/plain"
UNKNOWN_TASK_TEXT = "Status: unknown\nMessage: Task ID not found."
INSTRUCTIONS = (
    "Runs the commands configured for this host as tools. Async tools return a task URI; "
    "poll it with TaskStatus or ListPendingTasks. Call ListResources to discover context."
)


def _tool(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Run ``fn`` off the event loop and report domain errors as tool errors."""

    @functools.wraps(fn)
    async def handler(*args: Any, **kwargs: Any) -> Any:
        try:
            return await to_thread.run_sync(functools.partial(fn, *args, **kwargs))
        except SimpleMcpError as error:
            raise ToolError(str(error)) from error
        except Exception:
            logger.exception("Unexpected error in tool %s", getattr(fn, "__name__", fn))
            raise

    return handler


class ToolHandlers:
    """Transport-independent implementations of the tools the server exposes."""

    def __init__(
        self,
        service: CommandService,
        catalog: ResourceCatalog,
        *,
        verbose: bool = False,
    ) -> None:
        self.service = service
        self.catalog = catalog
        self.verbose = verbose

    def ping(self) -> str:
        if self.verbose:
            logger.debug("Handling ping request.")
        return "pong"

    def list_pending_tasks(self) -> str:
        return self.service.list_active_jobs()

    def task_status(self, taskID: str) -> str:  # noqa: N803
        if self.verbose:
            logger.debug("Handling TaskStatus request for taskID: %s", taskID)
        return self.service.get_job_status(taskID)

    def list_resources(self) -> str:
        return self.catalog.list_text()

    def get_resource(self, resourceURI: str) -> str:  # noqa: N803
        if self.verbose:
            logger.debug("Handling GetResource request for: %s", resourceURI)
        return self.catalog.read(resourceURI)

    def search_resources(self, query: str) -> str:
        return self.catalog.search(query)

    def call(self, name: str, arguments: dict[str, Any]) -> str | EmbeddedResource:
        """Invoke a configured tool; async tools answer with the task resource."""

        logger.info("Handling request for tool: %s", name)
        result = self.service.invoke(name, arguments)
        if result.job is not None:
            return EmbeddedResource(
                type="resource",
                resource=TextResourceContents(
                    uri=result.job.uri,
                    mimeType=TEXT_MIME_TYPE,
                    text=result.job.status_text,
                ),
            )
        return result.output or ""


class ScratchTools:
    """Scratch-directory tools bound to one root."""

    def __init__(self, root: str, catalog: ResourceCatalog) -> None:
        self.root = root
        self.catalog = catalog

    def create_file(self, path: str, content: str) -> str:
        return scratch.create_file(self.root, path, content)

    def read_file(self, path: str) -> str:
        return scratch.read_file(self.root, path)

    def delete_file(self, path: str) -> str:
        return scratch.delete_file(self.root, path)

    def modify_file(self, path: str, patch: str) -> str:
        return scratch.modify_file(self.root, path, patch)

    def replace_in_file(self, path: str, search: str, replace: str, count: int = 0) -> str:
        return scratch.replace_in_file(self.root, path, search, replace, count)

    def list_directory(self, path: str = ".") -> str:
        return scratch.list_directory(self.root, path)

    def create_directory(self, path: str) -> str:
        return scratch.create_directory(self.root, path)

    def remove_directory(self, path: str) -> str:
        return scratch.remove_directory(self.root, path)

    def copy_resource_to_file(self, resourceURI: str, path: str) -> str:  # noqa: N803
        return scratch.copy_resource_to_file(self.catalog, self.root, resourceURI, path)

    def copy_resource_tree(self, prefix: str, path: str) -> str:
        return scratch.copy_resource_tree(self.catalog, self.root, prefix, path)


def build_server(definition: ServerDefinition, options: RuntimeOptions) -> FastMCP:
    """Create a ``FastMCP`` server exposing everything ``definition`` declares."""

    tmp_dir = str(scratch.check_scratch_dir(options.tmp_dir)) if options.tmp_dir else None
    server = FastMCP(
        name=definition.name or "simple-mcp",
        instructions=INSTRUCTIONS,
        host=options.host,
        port=options.port,
        log_level="DEBUG" if options.verbose else "INFO",
    )
    registry = JobRegistry(max_tasks=options.max_async_tasks)
    catalog = ResourceCatalog(definition.resources, workdir=tmp_dir)
    service = CommandService(tools=definition.tools, registry=registry, workdir=tmp_dir)
    handlers = ToolHandlers(service, catalog, verbose=options.verbose)

    _register_builtin_tools(server, handlers)
    for spec in definition.tools:
        _register_command_tool(server, handlers, spec)
    for resource in catalog:
        _register_resource(server, catalog, resource)
    _register_task_template(server, registry)
    if tmp_dir:
        _register_scratch_tools(server, ScratchTools(tmp_dir, catalog))
        logger.info("Scratch tools enabled in %s", tmp_dir)
    return server


def _register_builtin_tools(server: FastMCP, handlers: ToolHandlers) -> None:
    builtins = [
        ("ping", handlers.ping, "Responds with 'pong' to keep the connection alive."),
        (
            "ListPendingTasks",
            handlers.list_pending_tasks,
            "Lists all asynchronous tasks that are currently 'pending' or 'running'.",
        ),
        (
            "TaskStatus",
            handlers.task_status,
            "Gets the status of a long-running async task from its Task ID or URI "
            "(e.g., simple-mcp://tasks/...).",
        ),
        (
            "ListResources",
            handlers.list_resources,
            "Lists all available system resources (context) provided by this server.",
        ),
        (
            "GetResource",
            handlers.get_resource,
            "Gets the current content of a specific resource by its URI "
            "(e.g., simple-mcp://system/uptime).",
        ),
        (
            "SearchResources",
            handlers.search_resources,
            "Searches resource URIs, descriptions and static content with a regular expression.",
        ),
    ]
    for name, fn, description in builtins:
        server.add_tool(_tool(fn), name=name, description=description, structured_output=False)
        logger.info("Registered built-in tool: %s", name)


def _register_command_tool(server: FastMCP, handlers: ToolHandlers, spec: CommandSpec) -> None:
    def run(**arguments: Any) -> str | EmbeddedResource:
        return handlers.call(spec.name, arguments)

    # one required string argument per declared parameter
    run.__signature__ = inspect.Signature(  # type: ignore[attr-defined]
        [
            inspect.Parameter(name, inspect.Parameter.KEYWORD_ONLY, annotation=str)
            for name in spec.parameters
        ],
    )
    server.add_tool(
        _tool(run),
        name=spec.name,
        description=spec.description or f"Runs the configured command {spec.name}.",
        structured_output=False,
    )
    suffix = " (Async)" if spec.is_async else ""
    if spec.timeout_seconds > 0:
        suffix += f" (Timeout: {spec.timeout_seconds}s)"
    logger.info("Registered tool: %s%s", spec.name, suffix)


def _register_resource(server: FastMCP, catalog: ResourceCatalog, spec: ResourceSpec) -> None:
    async def read() -> str:
        return await to_thread.run_sync(catalog.render, spec)

    server.add_resource(
        FunctionResource(
            uri=spec.uri,
            name=spec.uri,
            description=spec.description,
            mime_type=TEXT_MIME_TYPE,
            fn=read,
        ),
    )
    logger.info("Registered resource: %s (dynamic: %s)", spec.uri, spec.is_dynamic)


def _register_task_template(server: FastMCP, registry: JobRegistry) -> None:
    def read_task(task_id: str) -> str:
        current = registry.get(task_id)
        return UNKNOWN_TASK_TEXT if current is None else current.format_status()

    server.resource(
        f"{TASK_URI_PREFIX}{{task_id}}",
        name="task-status",
        description="Status of an async job, addressed by its Task ID.",
        mime_type=TEXT_MIME_TYPE,
    )(read_task)


def _register_scratch_tools(server: FastMCP, tools: ScratchTools) -> None:
    scratch_tools = [
        ("CreateFile", tools.create_file, "Creates a new file in the scratch space."),
        ("ReadFile", tools.read_file, "Reads the content of a file in the scratch space."),
        ("DeleteFile", tools.delete_file, "Deletes a file in the scratch space."),
        (
            "ModifyFile",
            tools.modify_file,
            "Modifies a file in the scratch space using a unified diff.",
        ),
        (
            "ReplaceInFile",
            tools.replace_in_file,
            "Replaces literal text in a scratch file; count 0 replaces every occurrence.",
        ),
        (
            "ListDirectory",
            tools.list_directory,
            "Lists the contents of a directory in the scratch space.",
        ),
        (
            "CreateDirectory",
            tools.create_directory,
            "Creates a new directory in the scratch space.",
        ),
        (
            "RemoveDirectory",
            tools.remove_directory,
            "Removes an empty directory in the scratch space.",
        ),
        (
            "CopyResourceToFile",
            tools.copy_resource_to_file,
            "Writes the current content of a resource to a file in the scratch space.",
        ),
        (
            "CopyResourceTree",
            tools.copy_resource_tree,
            "Copies every resource under a URI prefix into a scratch directory.",
        ),
    ]
    for name, fn, description in scratch_tools:
        server.add_tool(_tool(fn), name=name, description=description, structured_output=False)
