"""Restricted command templating with environment-variable parameter binding.

Templates use a small, closed syntax:

- ``{{.name}}`` (whitespace inside the braces is allowed) references the
  parameter ``name``;
- ``{{index . "any name"}}`` references a parameter whose name is not a
  plain identifier.

Parameter values never appear in the rendered command. Each reference is
replaced by ``${_MCP_VAR_<n>_<name>}`` and the value travels in the child
environment, so the shell expands it at spawn time and cannot parse it as
command syntax. Word splitting and globbing still apply to unquoted
references; wrapping a reference in double quotes keeps the value as a
single word.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from simple_mcp.errors import ConfigurationError, SimpleMcpError

ENV_PREFIX = "_MCP_VAR_"

_OPEN = "{{"
_CLOSE = "}}"
_FIELD_ACTION = re.compile(r"^\.([A-Za-z_][A-Za-z0-9_]*)$")
_INDEX_ACTION = re.compile(r'^index\s+\.\s+"((?:[^"\\]|\\.)*)"$')
_ESCAPE = re.compile(r"\\(.)")
_UNSAFE_ENV_CHARS = re.compile(r"[^A-Za-z0-9_]")


class TemplateError(SimpleMcpError):
    """Base class for command template failures."""


class TemplateSyntaxError(TemplateError, ConfigurationError):
    """Malformed template; a configuration problem, not a runtime one."""


class TemplateRenderError(TemplateError):
    """Template references a parameter that was not bound."""


@dataclass(frozen=True, slots=True)
class ParameterRef:
    """Placeholder for one parameter inside a parsed template."""

    name: str


@dataclass(frozen=True, slots=True)
class CommandTemplate:
    """Parsed command template."""

    source: str
    parts: tuple[str | ParameterRef, ...]

    @classmethod
    def parse(cls, source: str) -> CommandTemplate:
        parts: list[str | ParameterRef] = []
        position = 0
        while True:
            start = source.find(_OPEN, position)
            if start < 0:
                if position < len(source):
                    parts.append(source[position:])
                break
            if start > position:
                parts.append(source[position:start])
            end = source.find(_CLOSE, start + len(_OPEN))
            if end < 0:
                raise TemplateSyntaxError(
                    f"invalid command template: unclosed action at offset {start}",
                )
            parts.append(_parse_action(source[start + len(_OPEN) : end], offset=start))
            position = end + len(_CLOSE)
        return cls(source=source, parts=tuple(parts))

    @property
    def parameter_names(self) -> frozenset[str]:
        return frozenset(part.name for part in self.parts if isinstance(part, ParameterRef))

    def render(self, bindings: Mapping[str, str]) -> str:
        """Substitute each reference with the shell expansion of its variable."""

        rendered: list[str] = []
        for part in self.parts:
            if isinstance(part, str):
                rendered.append(part)
                continue
            variable = bindings.get(part.name)
            if variable is None:
                raise TemplateRenderError(
                    f"failed to build command from template: parameter {part.name!r} is not bound",
                )
            rendered.append("${" + variable + "}")
        return "".join(rendered)


@dataclass(slots=True)
class MaterializedCommand:
    """Literal shell command plus the environment entries it expands."""

    command: str
    variables: dict[str, str]

    def build_env(self, base: Mapping[str, str]) -> dict[str, str]:
        """Child environment: ``base`` without reserved names, plus bindings."""

        env = {key: value for key, value in base.items() if not key.startswith(ENV_PREFIX)}
        env.update(self.variables)
        return env


def materialize(
    template: str | CommandTemplate,
    params: Mapping[str, object] | None = None,
) -> MaterializedCommand:
    """Render ``template`` with every parameter bound through the environment."""

    parsed = template if isinstance(template, CommandTemplate) else CommandTemplate.parse(template)
    bindings: dict[str, str] = {}
    variables: dict[str, str] = {}
    for index, name in enumerate(sorted(params or {})):
        variable = f"{ENV_PREFIX}{index}_{_UNSAFE_ENV_CHARS.sub('_', name)}"
        bindings[name] = variable
        variables[variable] = str((params or {})[name])
    return MaterializedCommand(command=parsed.render(bindings), variables=variables)


def _parse_action(body: str, *, offset: int) -> ParameterRef:
    action = body.strip()
    field = _FIELD_ACTION.match(action)
    if field is not None:
        return ParameterRef(field.group(1))
    indexed = _INDEX_ACTION.match(action)
    if indexed is not None:
        return ParameterRef(_ESCAPE.sub(r"\1", indexed.group(1)))
    raise TemplateSyntaxError(
        f"invalid command template: unsupported action {{{{{body}}}}} at offset {offset}",
    )
