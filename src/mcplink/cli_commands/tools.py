"""``mcplink tools``: list and call tools on the server."""

from __future__ import annotations

import json
import sys
from typing import Any

import click

from mcplink.cli_commands._output import console, print_response, print_tools_table
from mcplink.cli_commands._session import SessionError, run_session
from mcplink.config import LinkSettings  # noqa: TC001
from mcplink.mcp.models import ToolDescriptor  # noqa: TC001
from mcplink.mcp.service import MCPClientService  # noqa: TC001


def parse_argument(pair: str) -> tuple[str, Any]:
    """Split ``key=value``; the value is JSON-decoded when it parses."""
    key, sep, value = pair.partition("=")
    if not sep or not key:
        msg = f"Expected key=value, got {pair!r}"
        raise click.BadParameter(msg, param_hint="--arg")
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


@click.group()
def tools() -> None:
    """List and call tools."""


@tools.command("list")
@click.pass_obj
def list_cmd(settings: LinkSettings) -> None:
    """List the tools the server advertises."""

    async def _list(service: MCPClientService) -> list[ToolDescriptor]:
        return await service.list_tools()

    try:
        found = run_session(settings.server, _list)
    except SessionError as exc:
        console.print(f"[red]Connection failed:[/red] {exc}")
        sys.exit(1)

    if not found:
        console.print("[yellow]No tools available.[/yellow]")
        return

    print_tools_table(found)


@tools.command("call")
@click.argument("name")
@click.option("--arg", "-a", "pairs", multiple=True, help="Tool argument as key=value.")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON-RPC response.")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the response.")
@click.pass_obj
def call_cmd(
    settings: LinkSettings,
    name: str,
    pairs: tuple[str, ...],
    as_json: bool,
    timeout: float | None,
) -> None:
    """Call tool NAME and print its result."""
    arguments = dict(parse_argument(pair) for pair in pairs)

    async def _call(service: MCPClientService) -> dict[str, Any] | None:
        return await service.call_tool(name, arguments, timeout=timeout)

    try:
        response = run_session(settings.server, _call)
    except SessionError as exc:
        console.print(f"[red]Connection failed:[/red] {exc}")
        sys.exit(1)

    if response is None:
        console.print(f"[red]No response from tool {name}.[/red]")
        sys.exit(1)

    print_response(response, as_json=as_json)
    if "error" in response:
        sys.exit(1)
