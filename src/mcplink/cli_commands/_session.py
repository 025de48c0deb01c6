"""Run a coroutine against a connected client, then disconnect."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from mcplink.config import ServerSettings  # noqa: TC001
from mcplink.mcp.service import MCPClientService

T = TypeVar("T")


class SessionError(Exception):
    """The server could not be reached; carries the connection diagnostic."""


def run_session(
    settings: ServerSettings,
    action: Callable[[MCPClientService], Awaitable[T]],
) -> T:
    """Connect with *settings*, run *action*, and always disconnect."""

    async def _run() -> T:
        service = MCPClientService.from_settings(settings)
        try:
            if not await service.connect_with(settings):
                raise SessionError(service.last_connection_error or "unknown error")
            return await action(service)
        finally:
            await service.disconnect()

    return asyncio.run(_run())
