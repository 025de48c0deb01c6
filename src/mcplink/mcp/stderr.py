"""StderrMonitor: drains the server's stderr for the lifetime of the process.

Every line is logged.  Lines that look like an interactive login prompt are
logged again at warning level.  A bounded tail of recent lines is kept so
the client can report it when the handshake times out or the process dies.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque

logger = logging.getLogger(__name__)

AUTH_KEYWORDS: tuple[str, ...] = ("browser", "authentication", "login", "auth")

STDERR_TAIL_LINES = 20


def looks_auth_related(line: str) -> bool:
    lowered = line.lower()
    return any(keyword in lowered for keyword in AUTH_KEYWORDS)


class StderrMonitor:
    """Background reader over a process stderr stream.

    Observability only: it never raises and never touches the protocol.
    """

    def __init__(self, stream: asyncio.StreamReader, *, max_lines: int = STDERR_TAIL_LINES) -> None:
        self._stream = stream
        self._tail: deque[str] = deque(maxlen=max_lines)
        self._task: asyncio.Task[None] | None = None
        self.auth_hint_seen = False

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="mcplink-stderr-monitor")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tail(self) -> str:
        """Recent stderr output, oldest first."""
        return "\n".join(self._tail).strip()

    async def drain(self, timeout: float = 0.5) -> str:
        """Give the reader *timeout* seconds to reach EOF, then return the tail."""
        if self._task is not None and not self._task.done():
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout)
            except TimeoutError:
                pass
        return self.tail()

    async def stop(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        try:
            while True:
                raw = await self._stream.readline()
                if not raw:
                    break
                line = raw.decode(errors="replace").strip()
                if not line:
                    continue
                self._tail.append(line)
                logger.info("MCP stderr: %s", line)
                if looks_auth_related(line):
                    self.auth_hint_seen = True
                    logger.warning("Authentication may be required: %s", line)
        except (OSError, ValueError, asyncio.IncompleteReadError) as exc:
            # Closed pipe or an over-long line; the stream is finished either way.
            logger.debug("Stderr monitoring ended: %s", exc)
