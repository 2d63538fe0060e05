"""Controllers for simple-mcp CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path

from simple_mcp.config import RuntimeOptions, Settings, resolve_options
from simple_mcp.errors import SimpleMcpError
from simple_mcp.jobs import CommandService, JobRegistry
from simple_mcp.loader import load_config
from simple_mcp.models import CommandSpec, ServerDefinition
from simple_mcp.server import build_server

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServeCommand:
    """CLI input for running the MCP server."""

    config_path: Path | None
    listen_addr: str | None
    tmp_dir: str | None
    verbose: bool | None
    max_async_tasks: int | None


@dataclass(slots=True)
class CheckConfigCommand:
    """CLI input for configuration validation."""

    config_path: Path | None


@dataclass(slots=True)
class RunToolCommand:
    """CLI input for a one-off synchronous tool run."""

    config_path: Path | None
    tool_name: str
    parameters: tuple[str, ...]
    tmp_dir: str | None = None


@dataclass(slots=True)
class CommandOutcome:
    """Lines to render in CLI plus the exit status."""

    lines: list[str]
    success: bool


class SimpleMcpCliController:
    """Loads configuration and drives the server or single tool runs."""

    def prepare_server(self, command: ServeCommand) -> tuple[ServerDefinition, RuntimeOptions]:
        settings = Settings.from_env(config_path=command.config_path)
        definition = load_config(settings.config_path)
        options = resolve_options(
            settings,
            definition.options,
            listen_addr=command.listen_addr,
            tmp_dir=command.tmp_dir,
            verbose=command.verbose,
            max_async_tasks=command.max_async_tasks,
        )
        return definition, options

    def serve(self, definition: ServerDefinition, options: RuntimeOptions) -> None:
        server = build_server(definition, options)
        logger.info(
            "Starting simple-mcp server %r on %s (%d tools, %d resources)",
            definition.name,
            options.listen_addr,
            len(definition.tools),
            len(definition.resources),
        )
        server.run(transport="streamable-http")

    def check_config(self, command: CheckConfigCommand) -> CommandOutcome:
        settings = Settings.from_env(config_path=command.config_path)
        try:
            definition = load_config(settings.config_path)
            options = resolve_options(settings, definition.options)
        except SimpleMcpError as error:
            return CommandOutcome(lines=[f"Config error: {error}"], success=False)

        lines = [
            f"Config OK: {settings.config_path}",
            f"Name: {definition.name or '-'} apiVersion={definition.api_version or '-'}",
            f"Listen: {options.listen_addr} scratch={options.tmp_dir or '-'} "
            f"max_async_tasks={options.max_async_tasks}",
            f"Tools: {len(definition.tools)}",
        ]
        for spec in definition.tools:
            flags = []
            if spec.is_async:
                flags.append("async")
            flags.append(f"timeout={spec.effective_timeout}s")
            params = ", ".join(spec.parameters) or "-"
            lines.append(f"- {spec.name} [{' '.join(flags)}] params={params}")
        lines.append(f"Resources: {len(definition.resources)}")
        lines.extend(
            f"- {resource.uri}{' (dynamic)' if resource.is_dynamic else ''}"
            for resource in definition.resources
        )
        return CommandOutcome(lines=lines, success=True)

    def run_tool(self, command: RunToolCommand) -> CommandOutcome:
        settings = Settings.from_env(config_path=command.config_path)
        definition = load_config(settings.config_path)
        options = resolve_options(settings, definition.options, tmp_dir=command.tmp_dir)
        spec = definition.tool(command.tool_name)
        if spec is None:
            return CommandOutcome(lines=[f"Unknown tool: {command.tool_name}"], success=False)

        # run inline even when the tool is async: there is nobody to poll
        service = CommandService(
            tools=[_as_sync(spec)],
            registry=JobRegistry(max_tasks=options.max_async_tasks),
            workdir=options.tmp_dir or None,
        )
        try:
            result = service.invoke(spec.name, _parse_parameters(command.parameters))
        except SimpleMcpError as error:
            return CommandOutcome(lines=[str(error)], success=False)
        return CommandOutcome(lines=(result.output or "").splitlines(), success=True)


def _parse_parameters(values: tuple[str, ...]) -> dict[str, str]:
    parameters: dict[str, str] = {}
    for value in values:
        name, separator, text = value.partition("=")
        if not separator or not name:
            raise SimpleMcpError(f"Invalid parameter {value!r}: expected name=value")
        parameters[name] = text
    return parameters


def _as_sync(spec: CommandSpec) -> CommandSpec:
    return replace(spec, is_async=False) if spec.is_async else spec
