"""Shared error types for mcplink.

These never escape :class:`~mcplink.mcp.client.MCPClient`; the facade turns
them into a ``False`` return plus a readable ``last_connection_error``.
"""

from __future__ import annotations


class MCPLinkError(Exception):
    """Base error for all mcplink failures."""


class SpawnError(MCPLinkError):
    """The operating system refused to start the server process."""

    def __init__(self, command: str, detail: str = "") -> None:
        self.command = command
        self.detail = detail
        super().__init__(f"Failed to start {command}" + (f": {detail}" if detail else ""))


class ProcessExitedError(MCPLinkError):
    """The server process exited before the handshake could begin."""

    def __init__(self, exit_code: int | None, stderr: str = "") -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(stderr or f"Exit code {exit_code}")


class TransportClosedError(MCPLinkError):
    """A write was attempted on a transport with no live process."""

    def __init__(self, detail: str = "Transport not connected") -> None:
        self.detail = detail
        super().__init__(detail)


class ConfigError(MCPLinkError):
    """Settings could not be read or validated."""
