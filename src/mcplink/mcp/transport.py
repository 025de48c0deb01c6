"""StdioTransport: newline-delimited JSON-RPC over a server's stdin/stdout.

The wire contract is one JSON document per line, no ``Content-Length``
framing.  The server's stdout is not exclusively ours: CLIs print banners,
progress text and even credential dumps on it.  :meth:`StdioTransport.receive`
therefore scans forward, discarding anything that is not a JSON-RPC object,
until a protocol message arrives, the server exits, or the deadline passes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from mcplink.errors import TransportClosedError
from mcplink.mcp.models import is_protocol_message, is_response
from mcplink.mcp.process import wait_for_exit

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 100

# Grace for reading output the server flushed just before exiting.
EXIT_DRAIN_TIMEOUT = 0.1


def _preview(text: str, limit: int = _PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


async def _cancel(task: asyncio.Future[Any]) -> None:
    if not task.done():
        task.cancel()
        await asyncio.wait({task})


def encode_message(message: dict[str, Any]) -> bytes:
    """Serialize *message* as a single JSON line (terminator included)."""
    line = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
    return (line + "\n").encode()


def parse_protocol_line(raw: bytes | str) -> dict[str, Any] | None:
    """Return the JSON-RPC object on *raw*, or ``None`` if the line is noise.

    Noise is: blank lines, lines not starting with ``{``, unparseable JSON,
    and JSON objects without a ``jsonrpc`` member.
    """
    text = raw.decode(errors="replace") if isinstance(raw, bytes) else raw
    trimmed = text.strip()
    if not trimmed:
        return None

    if not trimmed.startswith("{"):
        logger.info("Skipping non-JSON line from MCP stdout: %s", _preview(trimmed))
        return None

    try:
        parsed: Any = json.loads(trimmed)
    except json.JSONDecodeError:
        logger.info("Skipping unparseable JSON line: %s", _preview(trimmed))
        return None

    if not isinstance(parsed, dict):
        logger.info("Skipping non-object JSON line: %s", _preview(trimmed))
        return None

    if not is_protocol_message(parsed):
        logger.info("Skipping non-JSON-RPC JSON (keys: %s)", list(parsed)[:5])
        return None

    return parsed


class StdioTransport:
    """Line-oriented JSON-RPC channel over a running subprocess.

    Not safe for concurrent use: callers serialize write+read pairs.
    """

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process
        self._closed = False

    @property
    def alive(self) -> bool:
        return not self._closed and self._process.returncode is None

    async def send(self, message: dict[str, Any]) -> None:
        """Write *message* as one line to the server's stdin and flush."""
        stdin = self._process.stdin
        if self._closed or stdin is None or stdin.is_closing():
            raise TransportClosedError()
        data = encode_message(message)
        logger.debug("Sending MCP message: %s", data.decode().rstrip())
        try:
            stdin.write(data)
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise TransportClosedError(f"Server closed stdin: {exc}") from exc

    async def receive(
        self,
        timeout: float | None,
        *,
        expected_id: int | None = None,
    ) -> dict[str, Any] | None:
        """Return the next JSON-RPC response line, or ``None``.

        ``None`` means the deadline passed, stdout hit EOF, the server process
        exited, or the transport was closed.  Lines the server wrote before
        exiting are still read.  Server notifications and server-initiated
        requests (any message with a ``method``) are skipped.  A response
        whose ``id`` does not match *expected_id* is still returned, with a
        warning.
        """
        stdout = self._process.stdout
        if self._closed or stdout is None:
            return None

        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        exit_watch = asyncio.ensure_future(wait_for_exit(self._process))

        try:
            while True:
                remaining = None if deadline is None else deadline - loop.time()
                if remaining is not None and remaining <= 0:
                    logger.error("Timeout: no JSON-RPC response received within %ss", timeout)
                    return None

                # Once the server has exited, only lines already written remain.
                exited = exit_watch.done()
                limit = remaining
                if exited:
                    limit = EXIT_DRAIN_TIMEOUT
                    if remaining is not None:
                        limit = min(remaining, EXIT_DRAIN_TIMEOUT)

                reading = asyncio.ensure_future(stdout.readline())
                try:
                    done, _ = await asyncio.wait(
                        {reading} if exited else {reading, exit_watch},
                        timeout=limit,
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                finally:
                    await _cancel(reading)

                if reading not in done:
                    if exited:
                        logger.error(
                            "MCP server exited (code %s) without responding",
                            self._process.returncode,
                        )
                        return None
                    if exit_watch in done:
                        continue
                    logger.error("Timeout waiting for MCP response after %ss", timeout)
                    return None

                try:
                    raw = reading.result()
                except ValueError as exc:
                    # Line longer than the stream limit; the oversized chunk is dropped.
                    logger.warning("Skipping oversized line from MCP stdout: %s", exc)
                    continue

                if not raw:
                    logger.error("Unexpected end of stream from MCP server")
                    return None

                message = parse_protocol_line(raw)
                if message is None:
                    continue

                if not is_response(message):
                    logger.warning(
                        "Skipping server-initiated message while awaiting a response: %s",
                        message.get("method"),
                    )
                    continue

                if expected_id is not None and message.get("id") not in (expected_id, None):
                    logger.warning(
                        "Response id %r does not match request id %r; using arrival order",
                        message.get("id"),
                        expected_id,
                    )

                logger.debug("Received JSON-RPC message: %s", _preview(json.dumps(message), 200))
                return message
        finally:
            await _cancel(exit_watch)

    def close(self) -> None:
        """Mark the channel closed; the supervisor owns the process itself."""
        self._closed = True
