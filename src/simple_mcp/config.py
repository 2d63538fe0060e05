"""Runtime configuration for the server and CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from simple_mcp.errors import ConfigurationError
from simple_mcp.jobs.registry import DEFAULT_MAX_TASKS
from simple_mcp.models import ServerOptions

DEFAULT_CONFIG_PATH = Path("simple-mcp.yaml")
DEFAULT_LISTEN_ADDR = "localhost:8080"


@dataclass(slots=True)
class Settings:
    """Defaults, overridable from the environment."""

    config_path: Path = DEFAULT_CONFIG_PATH
    listen_addr: str = DEFAULT_LISTEN_ADDR
    tmp_dir: str = ""
    verbose: bool = False
    max_async_tasks: int = DEFAULT_MAX_TASKS

    @classmethod
    def from_env(cls, config_path: Path | None = None) -> Settings:
        """Load settings from ``SIMPLE_MCP_*`` environment variables."""

        return cls(
            config_path=config_path
            or Path(os.getenv("SIMPLE_MCP_CONFIG", str(DEFAULT_CONFIG_PATH))),
            listen_addr=os.getenv("SIMPLE_MCP_LISTEN_ADDR", DEFAULT_LISTEN_ADDR),
            tmp_dir=os.getenv("SIMPLE_MCP_TMPDIR", ""),
            verbose=_env_bool("SIMPLE_MCP_VERBOSE", False),
            max_async_tasks=_env_int("SIMPLE_MCP_MAX_ASYNC_TASKS", DEFAULT_MAX_TASKS),
        )


@dataclass(slots=True)
class RuntimeOptions:
    """Effective options after merging CLI flags, config file and settings."""

    listen_addr: str
    tmp_dir: str
    verbose: bool
    max_async_tasks: int

    @property
    def host(self) -> str:
        return parse_listen_addr(self.listen_addr)[0]

    @property
    def port(self) -> int:
        return parse_listen_addr(self.listen_addr)[1]


def resolve_options(  # noqa: PLR0913
    settings: Settings,
    options: ServerOptions,
    *,
    listen_addr: str | None = None,
    tmp_dir: str | None = None,
    verbose: bool | None = None,
    max_async_tasks: int | None = None,
) -> RuntimeOptions:
    """CLI flag wins over the config file, which wins over ``settings``."""

    resolved = RuntimeOptions(
        listen_addr=_first(listen_addr, options.listen_addr, settings.listen_addr),
        tmp_dir=_first(tmp_dir, options.tmp_dir, settings.tmp_dir),
        verbose=_first(verbose, options.verbose, settings.verbose),
        max_async_tasks=_first(max_async_tasks, options.max_async_tasks, settings.max_async_tasks),
    )
    if resolved.max_async_tasks < 0:
        raise ConfigurationError(
            f"maxAsyncTasks must not be negative, got {resolved.max_async_tasks}",
        )
    parse_listen_addr(resolved.listen_addr)
    return resolved


def parse_listen_addr(value: str) -> tuple[str, int]:
    """Split ``host:port`` or ``:port``; an empty host listens on all interfaces."""

    host, separator, port_text = value.rpartition(":")
    if not separator or not port_text.isdigit():
        raise ConfigurationError(f"Invalid listen address {value!r}: expected host:port")
    port = int(port_text)
    if not 0 < port < 65536:  # noqa: PLR2004
        raise ConfigurationError(f"Invalid listen address {value!r}: port out of range")
    return host.strip("[]") or "0.0.0.0", port  # noqa: S104


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
