"""YAML configuration loading and validation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from simple_mcp.commands.templating import CommandTemplate
from simple_mcp.errors import ConfigurationError
from simple_mcp.models import CommandSpec, ResourceSpec, ServerDefinition, ServerOptions

logger = logging.getLogger(__name__)

BUILTIN_TOOL_NAMES = frozenset(
    {
        "ping",
        "ListPendingTasks",
        "TaskStatus",
        "ListResources",
        "GetResource",
        "SearchResources",
        "CreateFile",
        "ReadFile",
        "DeleteFile",
        "ModifyFile",
        "ReplaceInFile",
        "ListDirectory",
        "CreateDirectory",
        "RemoveDirectory",
        "CopyResourceToFile",
        "CopyResourceTree",
    },
)


def load_config(path: str | Path) -> ServerDefinition:
    """Read and validate the configuration file at ``path``."""

    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as error:
        raise ConfigurationError(f"failed to read config file {config_path}: {error}") from error
    return parse_config(text, base_dir=config_path.resolve().parent, source=str(config_path))


def parse_config(
    text: str,
    *,
    base_dir: str | Path = ".",
    source: str = "<config>",
) -> ServerDefinition:
    """Validate YAML ``text``; relative file references resolve against ``base_dir``."""

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as error:
        raise ConfigurationError(_describe_yaml_error(source, error)) from error

    if document is None:
        document = {}
    if not isinstance(document, Mapping):
        raise ConfigurationError(f"{source}: top level must be a mapping")

    metadata = _mapping(document.get("metadata"), f"{source}: metadata")
    spec = _mapping(document.get("spec"), f"{source}: spec")

    if "contextItems" in spec and "tools" in spec:
        raise ConfigurationError(
            f"{source}: both 'contextItems' and 'tools' are defined; use only 'tools'",
        )
    raw_tools = spec.get("tools", spec.get("contextItems")) or []
    if "contextItems" in spec:
        logger.warning("%s: 'contextItems' is deprecated, rename it to 'tools'", source)

    definition = ServerDefinition(
        name=str(metadata.get("name") or ""),
        api_version=str(document.get("apiVersion") or ""),
        tools=_parse_tools(raw_tools, source),
        resources=_parse_resources(spec.get("resources") or [], Path(base_dir), source),
        options=_parse_options(spec, source),
    )
    logger.debug(
        "Loaded %s: %d tools, %d resources",
        source,
        len(definition.tools),
        len(definition.resources),
    )
    return definition


def _describe_yaml_error(source: str, error: yaml.YAMLError) -> str:
    mark = getattr(error, "problem_mark", None)
    problem = getattr(error, "problem", None) or str(error)
    if mark is None:
        return f"{source}: invalid YAML (unknown line): {problem}"
    return f"{source}: invalid YAML at line {mark.line + 1}, column {mark.column + 1}: {problem}"


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"{what} must be a mapping")
    return value


def _parse_tools(raw_tools: Any, source: str) -> tuple[CommandSpec, ...]:
    if not isinstance(raw_tools, list):
        raise ConfigurationError(f"{source}: tools must be a list")

    tools: list[CommandSpec] = []
    seen: set[str] = set()
    for position, raw in enumerate(raw_tools):
        item = _mapping(raw, f"{source}: tool #{position + 1}")
        name = str(item.get("name") or "").strip()
        command = str(item.get("command") or "")
        if not name:
            raise ConfigurationError(f"{source}: tool #{position + 1} has no name")
        if not command.strip():
            raise ConfigurationError(f"{source}: tool {name!r} has no command")
        if name in BUILTIN_TOOL_NAMES:
            raise ConfigurationError(f"{source}: tool {name!r} collides with a built-in tool")
        if name in seen:
            raise ConfigurationError(f"{source}: duplicate tool name {name!r}")
        seen.add(name)

        parameters = _parse_parameters(item.get("parameters"), name, source)
        template = CommandTemplate.parse(command)
        undeclared = sorted(template.parameter_names - set(parameters))
        if undeclared:
            raise ConfigurationError(
                f"{source}: tool {name!r} references undeclared parameters: "
                f"{', '.join(undeclared)}",
            )

        tools.append(
            CommandSpec(
                name=name,
                command=command,
                description=str(item.get("description") or ""),
                parameters=parameters,
                timeout_seconds=_parse_int(item.get("timeoutSeconds", 0), f"{name}.timeoutSeconds"),
                is_async=bool(item.get("async", False)),
            ),
        )
    return tuple(tools)


def _parse_parameters(raw: Any, tool: str, source: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigurationError(f"{source}: parameters of tool {tool!r} must be a list")
    names: list[str] = []
    for value in raw:
        name = str(value)
        if not name.isidentifier() or name.startswith("_"):
            raise ConfigurationError(
                f"{source}: tool {tool!r} has invalid parameter name {name!r}",
            )
        if name in names:
            raise ConfigurationError(f"{source}: tool {tool!r} declares {name!r} twice")
        names.append(name)
    return tuple(names)


def _parse_resources(raw_resources: Any, base_dir: Path, source: str) -> tuple[ResourceSpec, ...]:
    if not isinstance(raw_resources, list):
        raise ConfigurationError(f"{source}: resources must be a list")

    resources: list[ResourceSpec] = []
    for position, raw in enumerate(raw_resources):
        item = _mapping(raw, f"{source}: resource #{position + 1}")
        uri = str(item.get("uri") or "").strip()
        if not uri:
            raise ConfigurationError(f"{source}: resource #{position + 1} has no uri")
        description = str(item.get("description") or "")

        directory = item.get("directory")
        if directory:
            resources.extend(_expand_directory(uri, description, base_dir / str(directory)))
            continue

        content = str(item.get("content") or "")
        content_file = item.get("contentFile")
        if content_file:
            file_path = base_dir / str(content_file)
            try:
                content = file_path.read_text(encoding="utf-8")
            except OSError as error:
                raise ConfigurationError(
                    f"{source}: failed to read contentFile for {uri}: {error}",
                ) from error
        resources.append(
            ResourceSpec(
                uri=uri,
                description=description,
                content=content,
                command=str(item.get("command") or ""),
            ),
        )

    seen: set[str] = set()
    for resource in resources:
        if resource.uri in seen:
            raise ConfigurationError(f"{source}: duplicate resource uri {resource.uri!r}")
        seen.add(resource.uri)
    return tuple(resources)


def _expand_directory(uri: str, description: str, directory: Path) -> list[ResourceSpec]:
    if not directory.is_dir():
        raise ConfigurationError(f"resource directory does not exist: {directory}")

    base = uri.rstrip("/")
    expanded: list[ResourceSpec] = []
    for file_path in sorted(path for path in directory.rglob("*") if path.is_file()):
        relative = file_path.relative_to(directory).as_posix()
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as error:
            raise ConfigurationError(
                f"failed to read resource file {file_path}: {error}",
            ) from error
        expanded.append(
            ResourceSpec(uri=f"{base}/{relative}", description=description, content=content),
        )
    logger.debug("Expanded directory %s into %d resources under %s", directory, len(expanded), base)
    return expanded


def _parse_options(spec: Mapping[str, Any], source: str) -> ServerOptions:
    verbose = spec.get("verbose")
    if verbose is not None and not isinstance(verbose, bool):
        raise ConfigurationError(f"{source}: verbose must be a boolean")
    max_tasks = spec.get("maxAsyncTasks")
    return ServerOptions(
        listen_addr=str(spec["listenAddr"]) if spec.get("listenAddr") else None,
        tmp_dir=str(spec["tmpDir"]) if spec.get("tmpDir") else None,
        verbose=verbose,
        max_async_tasks=None if max_tasks is None else _parse_int(max_tasks, "maxAsyncTasks"),
    )


def _parse_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{what} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"{what} must be an integer, got {value!r}") from error
