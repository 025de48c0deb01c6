"""MCPClientService: session owner that applies caller-level timeouts.

The service owns one explicitly constructed :class:`MCPClient` and is meant
to be held by whatever drives the UI or CLI session.  It bounds ``connect``
with an outer timeout and reports the outcome through an optional callback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from mcplink.mcp.client import MCPClient

if TYPE_CHECKING:
    from mcplink.config import ServerSettings
    from mcplink.mcp.models import ToolDescriptor

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 150.0


class MCPClientService:
    """Holds one :class:`MCPClient` for the lifetime of a session."""

    def __init__(
        self,
        client: MCPClient | None = None,
        *,
        connect_timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        self.client = client or MCPClient()
        self._connect_timeout = connect_timeout
        self._timeout_error: str | None = None

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> MCPClientService:
        return cls(MCPClient.from_settings(settings), connect_timeout=settings.connect_timeout)

    @property
    def last_connection_error(self) -> str | None:
        return self.client.last_connection_error or self._timeout_error

    def is_connected(self) -> bool:
        return self.client.is_connected()

    async def connect(
        self,
        command: str,
        args: str | Sequence[str] | None = None,
        working_directory: str | None = None,
        *,
        on_result: Callable[[bool], None] | None = None,
    ) -> bool:
        """Connect within the outer timeout; ``False`` on failure or expiry."""
        self._timeout_error = None
        try:
            connected = await asyncio.wait_for(
                self.client.connect(command, args, working_directory),
                self._connect_timeout,
            )
        except TimeoutError:
            logger.error("Connection timed out after %ss", self._connect_timeout)
            self._timeout_error = f"Connection timed out after {self._connect_timeout}s"
            await self.client.disconnect()
            connected = False

        if on_result is not None:
            on_result(connected)
        return connected

    async def connect_with(self, settings: ServerSettings, **kwargs: Any) -> bool:
        """Connect using the command, args and working directory in *settings*."""
        return await self.connect(
            settings.command,
            settings.args,
            settings.working_directory,
            **kwargs,
        )

    async def disconnect(self) -> None:
        await self.client.disconnect()

    async def list_tools(self) -> list[ToolDescriptor]:
        return await self.client.list_tools()

    async def call_tool(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        return await self.client.call_tool(name, arguments, timeout=timeout)
