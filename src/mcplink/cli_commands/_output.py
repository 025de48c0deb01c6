"""Shared CLI output formatters."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table

from mcplink.mcp.models import ToolDescriptor  # noqa: TC001

console = Console()


def print_tools_table(tools: list[ToolDescriptor]) -> None:
    """Pretty-print tool descriptors as a table."""
    table = Table(title="Available Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Arguments")

    for tool in tools:
        table.add_row(
            tool.name,
            _truncate(tool.description or ""),
            ", ".join(_format_argument(name, arg.type) for name, arg in tool.arguments.items()) or "-",
        )

    console.print(table)


def print_response(response: dict[str, Any], *, as_json: bool = False) -> None:
    """Print a ``tools/call`` response as text, or verbatim JSON."""
    import json

    from mcplink.mcp.models import error_message, extract_text

    if as_json:
        console.out(json.dumps(response, indent=2, default=str), highlight=False)
        return

    message = error_message(response)
    if message is not None:
        console.print(f"[red]Tool error:[/red] {message}")
        return
    console.print(extract_text(response), markup=False, highlight=False, soft_wrap=True)


def _format_argument(name: str, type_: Any) -> str:
    return f"{name}: {type_}" if type_ else name


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
