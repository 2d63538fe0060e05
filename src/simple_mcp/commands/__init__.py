"""Command materialization and execution."""

from simple_mcp.commands.executor import (
    CommandError,
    CommandFailedError,
    CommandResult,
    CommandSpawnError,
    CommandTimeoutError,
    count_lines,
    execute_command,
)
from simple_mcp.commands.templating import (
    CommandTemplate,
    MaterializedCommand,
    TemplateError,
    TemplateRenderError,
    TemplateSyntaxError,
    materialize,
)

__all__ = [
    "CommandError",
    "CommandFailedError",
    "CommandResult",
    "CommandSpawnError",
    "CommandTemplate",
    "CommandTimeoutError",
    "MaterializedCommand",
    "TemplateError",
    "TemplateRenderError",
    "TemplateSyntaxError",
    "count_lines",
    "execute_command",
    "materialize",
]
