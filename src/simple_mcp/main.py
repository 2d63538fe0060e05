"""CLI entrypoint for simple-mcp."""

import logging
from pathlib import Path

import rich_click as click

from simple_mcp import __version__
from simple_mcp.controllers import (
    CheckConfigCommand,
    RunToolCommand,
    ServeCommand,
    SimpleMcpCliController,
)
from simple_mcp.errors import SimpleMcpError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = SimpleMcpCliController()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="simple-mcp")
def simple_mcp() -> None:
    """Expose configured shell commands and context resources over MCP.

    Configuration is read from `simple-mcp.yaml` unless `--config` or
    `SIMPLE_MCP_CONFIG` points elsewhere.
    """


@simple_mcp.command("serve")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration file (YAML).",
)
@click.option("--listen-addr", default=None, help="Address to listen on, e.g. `:8080`.")
@click.option("--tmpdir", "tmp_dir", default=None, help="Scratch directory; enables file tools.")
@click.option("--verbose/--quiet", default=None, help="Log every request in detail.")
@click.option(
    "--max-async-tasks",
    type=click.IntRange(min=0),
    default=None,
    help="Task history size; `0` keeps every task.",
)
def serve(  # noqa: PLR0913
    config_path: Path | None,
    listen_addr: str | None,
    tmp_dir: str | None,
    verbose: bool | None,
    max_async_tasks: int | None,
) -> None:
    """Serve MCP over streamable HTTP on `/mcp`."""

    command = ServeCommand(
        config_path=config_path,
        listen_addr=listen_addr,
        tmp_dir=tmp_dir,
        verbose=verbose,
        max_async_tasks=max_async_tasks,
    )
    try:
        definition, options = CONTROLLER.prepare_server(command)
        logging.basicConfig(
            level=logging.DEBUG if options.verbose else logging.INFO,
            format=LOG_FORMAT,
        )
        CONTROLLER.serve(definition, options)
    except SimpleMcpError as error:
        raise click.ClickException(str(error)) from error


@simple_mcp.command("check-config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration file (YAML).",
)
def check_config(config_path: Path | None) -> None:
    """Load and validate the configuration, then print a summary."""

    result = CONTROLLER.check_config(CheckConfigCommand(config_path=config_path))
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Configuration is invalid.")


@simple_mcp.command("run")
@click.argument("tool_name")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration file (YAML).",
)
@click.option(
    "-p",
    "--param",
    "parameters",
    multiple=True,
    help="Tool parameter as `name=value`. Can be repeated.",
)
@click.option("--tmpdir", "tmp_dir", default=None, help="Working directory for the command.")
def run_tool(
    tool_name: str,
    config_path: Path | None,
    parameters: tuple[str, ...],
    tmp_dir: str | None,
) -> None:
    """Run one configured tool synchronously and print its output."""

    try:
        result = CONTROLLER.run_tool(
            RunToolCommand(
                config_path=config_path,
                tool_name=tool_name,
                parameters=parameters,
                tmp_dir=tmp_dir,
            ),
        )
    except SimpleMcpError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(f"Tool {tool_name} failed.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    simple_mcp()
