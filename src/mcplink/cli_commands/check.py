"""``mcplink check``: start the server and run the handshake."""

from __future__ import annotations

import sys

import click

from mcplink.cli_commands._output import console
from mcplink.cli_commands._session import SessionError, run_session
from mcplink.config import LinkSettings  # noqa: TC001
from mcplink.mcp.service import MCPClientService  # noqa: TC001


@click.command()
@click.pass_obj
def check(settings: LinkSettings) -> None:
    """Connect to the configured server and report the result."""
    server = settings.server

    async def _still_alive(service: MCPClientService) -> bool:
        return service.is_connected()

    console.print(f"Connecting to [cyan]{server.command}[/cyan] {server.args or ''}")
    try:
        alive = run_session(server, _still_alive)
    except SessionError as exc:
        console.print(f"[red]Connection failed:[/red] {exc}")
        sys.exit(1)

    if alive:
        console.print("[green]Connected: handshake completed.[/green]")
    else:
        console.print("[yellow]Handshake completed but the server exited.[/yellow]")
        sys.exit(1)
