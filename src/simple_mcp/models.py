"""Declarative tool and resource definitions loaded from configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_TIMEOUT_SECONDS = 30


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """One configured shell command exposed as a tool."""

    name: str
    command: str
    description: str = ""
    parameters: tuple[str, ...] = ()
    timeout_seconds: int = 0
    is_async: bool = False

    @property
    def effective_timeout(self) -> int:
        return self.timeout_seconds if self.timeout_seconds > 0 else DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class ResourceSpec:
    """Static text and/or command output published under a URI."""

    uri: str
    description: str = ""
    content: str = ""
    command: str = ""

    @property
    def is_dynamic(self) -> bool:
        return bool(self.command)


@dataclass(frozen=True, slots=True)
class ServerOptions:
    """Optional server options from the ``spec`` section of the config file."""

    listen_addr: str | None = None
    tmp_dir: str | None = None
    verbose: bool | None = None
    max_async_tasks: int | None = None


@dataclass(frozen=True, slots=True)
class ServerDefinition:
    """Validated configuration file contents."""

    name: str
    api_version: str
    tools: tuple[CommandSpec, ...] = ()
    resources: tuple[ResourceSpec, ...] = ()
    options: ServerOptions = field(default_factory=ServerOptions)

    def tool(self, name: str) -> CommandSpec | None:
        for spec in self.tools:
            if spec.name == name:
                return spec
        return None
