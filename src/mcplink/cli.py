"""mcplink CLI entrypoint."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from mcplink import __version__
from mcplink.config import LinkSettings, SettingsLoader
from mcplink.errors import ConfigError


def _configure_logging(verbose: bool) -> None:
    """Route mcplink logs through rich; quiet unless *verbose*."""
    from rich.console import Console
    from rich.logging import RichHandler

    package_logger = logging.getLogger("mcplink")
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@click.group()
@click.version_option(version=__version__, prog_name="mcplink")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML settings file.",
)
@click.option("--command", "server_command", default=None, help="Server executable.")
@click.option("--args", "server_args", default=None, help="Server arguments (whitespace separated).")
@click.option("--cwd", "working_directory", default=None, help="Server working directory.")
@click.option("--verbose", "-v", is_flag=True, help="Log protocol traffic and server stderr.")
@click.option("--telemetry", is_flag=True, help="Export OpenTelemetry spans to the console.")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    server_command: str | None,
    server_args: str | None,
    working_directory: str | None,
    verbose: bool,
    telemetry: bool,
) -> None:
    """mcplink: talk to an MCP tool server over stdio."""
    _configure_logging(verbose)

    settings = LinkSettings()
    if config_path is not None:
        try:
            settings = SettingsLoader(config_path).load()
        except ConfigError as exc:
            click.echo(f"Configuration error: {exc}", err=True)
            sys.exit(2)

    overrides = {
        "command": server_command,
        "args": server_args,
        "working_directory": working_directory,
    }
    settings.server = settings.server.model_copy(
        update={k: v for k, v in overrides.items() if v is not None}
    )

    if telemetry or (settings.telemetry is not None and settings.telemetry.enabled):
        from mcplink.utils.telemetry import configure_telemetry

        endpoint = settings.telemetry.otlp_endpoint if settings.telemetry else None
        try:
            configure_telemetry(console=telemetry, otlp_endpoint=endpoint)
        except ImportError as exc:
            click.echo(f"Telemetry unavailable: {exc}", err=True)
            sys.exit(2)

    ctx.obj = settings


# Register subcommands
from mcplink.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
