"""Catalog of configured resources: static text, files and command output."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from simple_mcp.commands.executor import count_lines, execute_command
from simple_mcp.errors import SimpleMcpError, UnknownResourceError
from simple_mcp.jobs.service import CommandRunner
from simple_mcp.models import CommandSpec, ResourceSpec

logger = logging.getLogger(__name__)


class ResourceCatalog:
    """Lookup, rendering and search over configured resources."""

    def __init__(
        self,
        resources: Iterable[ResourceSpec],
        *,
        workdir: str | Path | None = None,
        runner: CommandRunner = execute_command,
    ) -> None:
        self._resources = {spec.uri: spec for spec in resources}
        self.workdir = workdir
        self._runner = runner

    def __iter__(self) -> Iterator[ResourceSpec]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)

    def get(self, uri: str) -> ResourceSpec:
        spec = self._resources.get(uri)
        if spec is None:
            raise UnknownResourceError(
                f"Resource not found: {uri}. Call ListResources to see available URIs.",
            )
        return spec

    def read(self, uri: str) -> str:
        return self.render(self.get(uri))

    def render(self, spec: ResourceSpec) -> str:
        """Static content followed by command output.

        A failing command does not raise: the error and captured output are
        appended so the agent can see what went wrong.
        """

        parts = [spec.content]
        if spec.command:
            result = self._runner(
                CommandSpec(name=spec.uri, command=spec.command),
                {},
                self.workdir,
            )
            if result.error is not None:
                logger.error(
                    "Error executing command for resource %s (Exit Code: %d): %s",
                    spec.uri,
                    result.exit_code,
                    result.error,
                )
                parts.append(f"\nError executing command: {result.error}. Output: {result.output}")
            else:
                logger.debug(
                    "Executed command for resource %s, output: %d bytes, %d lines, duration: %s",
                    spec.uri,
                    len(result.output),
                    count_lines(result.output),
                    result.duration,
                )
                parts.append(result.output)
        return "".join(parts)

    def list_text(self) -> str:
        lines = [f"Found {len(self._resources)} resources:\n"]
        lines.extend(
            f"URI: {uri}\nDescription: {self._resources[uri].description}\n"
            for uri in sorted(self._resources)
        )
        return "\n".join(lines)

    def search(self, pattern: str) -> str:
        """Regex search over URI, description and static content."""

        try:
            regex = re.compile(pattern)
        except re.error as error:
            raise SimpleMcpError(f"invalid search pattern {pattern!r}: {error}") from error

        matches = [
            spec
            for uri, spec in sorted(self._resources.items())
            if regex.search(uri) or regex.search(spec.description) or regex.search(spec.content)
        ]
        if not matches:
            return f"No resources matched the query: {pattern}"
        lines = [f"Found {len(matches)} matching resources:\n"]
        lines.extend(f"URI: {spec.uri}\nDescription: {spec.description}\n" for spec in matches)
        return "\n".join(lines)

    def under_prefix(self, prefix: str) -> list[tuple[str, ResourceSpec]]:
        """Resources below ``prefix`` with their relative names, sorted by URI.

        ``prefix://a`` matches ``prefix://a/x`` but never ``prefix://ab/x``.
        """

        base = prefix if prefix.endswith("/") else f"{prefix}/"
        return [
            (uri[len(base) :], spec)
            for uri, spec in sorted(self._resources.items())
            if uri.startswith(base) and len(uri) > len(base)
        ]
