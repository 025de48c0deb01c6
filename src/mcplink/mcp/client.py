"""MCPClient: stdio MCP client with a supervised server process.

Usage::

    client = MCPClient()
    if await client.connect("akeyless", "mcp --gateway-url https://api.akeyless.io"):
        tools = await client.list_tools()
        response = await client.call_tool("list_items", {"path": "/"})
    else:
        print(client.last_connection_error)
    await client.disconnect()

Failures never raise out of the public coroutines: ``connect`` returns
``False`` and records :attr:`MCPClient.last_connection_error`; ``list_tools``
returns ``[]`` and ``call_tool`` returns ``None``.

Exactly one write+read exchange is in flight at a time.  The transport has
no way to route replies by id, so an ``asyncio.Lock`` guards every exchange
and replies are matched to requests by arrival order.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic_core import to_jsonable_python

from mcplink import __version__
from mcplink.errors import MCPLinkError, TransportClosedError
from mcplink.mcp.models import (
    PROTOCOL_VERSION,
    JsonRpcNotification,
    JsonRpcRequest,
    ToolDescriptor,
    error_message,
)
from mcplink.mcp.process import STARTUP_GRACE_PERIOD, ProcessSupervisor, build_command
from mcplink.mcp.transport import StdioTransport
from mcplink.utils.telemetry import (
    ATTR_COMMAND,
    ATTR_CONNECTED,
    ATTR_ERROR,
    ATTR_PID,
    ATTR_REQUEST_ID,
    ATTR_TIMED_OUT,
    ATTR_TOOL_COUNT,
    ATTR_TOOL_NAME,
    get_tracer,
)

if TYPE_CHECKING:
    from mcplink.config import ServerSettings

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

CLIENT_NAME = "mcplink"

# An interactive SAML/browser login may run before the server answers.
HANDSHAKE_TIMEOUT = 120.0
REQUEST_TIMEOUT = 30.0
INITIALIZED_SETTLE_DELAY = 0.2

NO_RESPONSE_ERROR = "No response from MCP server (timed out or auth failed)"


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_INIT = "awaiting_init"
    READY = "ready"


def encode_argument(value: Any) -> Any:
    """Convert one tool argument to a JSON-compatible value."""
    if value is None or isinstance(value, str | int | float | bool):
        return value
    if isinstance(value, list | tuple | set | frozenset):
        return [encode_argument(item) for item in value]
    return to_jsonable_python(value, fallback=str)


def encode_arguments(arguments: Mapping[str, Any] | None) -> dict[str, Any]:
    return {str(key): encode_argument(value) for key, value in (arguments or {}).items()}


class MCPClient:
    """Connects to one MCP server over stdio and exposes its tools.

    One instance owns at most one server process.  Calling :meth:`connect`
    again tears down the previous process first.
    """

    def __init__(
        self,
        *,
        handshake_timeout: float = HANDSHAKE_TIMEOUT,
        request_timeout: float = REQUEST_TIMEOUT,
        auto_inject_auth: bool = True,
        profile_path: Path | None = None,
        grace_period: float = STARTUP_GRACE_PERIOD,
        settle_delay: float = INITIALIZED_SETTLE_DELAY,
        client_name: str = CLIENT_NAME,
        client_version: str = __version__,
    ) -> None:
        self._handshake_timeout = handshake_timeout
        self._request_timeout = request_timeout
        self._auto_inject_auth = auto_inject_auth
        self._profile_path = profile_path
        self._grace_period = grace_period
        self._settle_delay = settle_delay
        self._client_info = {"name": client_name, "version": client_version}

        self._supervisor: ProcessSupervisor | None = None
        self._transport: StdioTransport | None = None
        self._state = ConnectionState.DISCONNECTED
        self._last_error: str | None = None
        self._next_id = 0
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> MCPClient:
        return cls(
            handshake_timeout=settings.handshake_timeout,
            request_timeout=settings.request_timeout,
            auto_inject_auth=settings.auto_inject_auth,
            profile_path=settings.profile_path,
        )

    async def __aenter__(self) -> MCPClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current state; a dead process reads as ``DISCONNECTED``."""
        live_states = (ConnectionState.AWAITING_INIT, ConnectionState.READY)
        if self._state in live_states and not self.is_connected():
            return ConnectionState.DISCONNECTED
        return self._state

    @property
    def last_connection_error(self) -> str | None:
        """Diagnostic from the most recent :meth:`connect` attempt, if it failed."""
        return self._last_error

    def is_connected(self) -> bool:
        """True while a server process exists and is running, handshake or not."""
        return self._supervisor is not None and self._supervisor.alive

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(
        self,
        command: str,
        args: str | Sequence[str] | None = None,
        working_directory: str | None = None,
    ) -> bool:
        """Start the server and run the ``initialize`` handshake.

        May take up to the handshake timeout.  Returns ``False`` on any
        failure, with the reason in :attr:`last_connection_error`.
        """
        await self._teardown()
        self._last_error = None
        self._state = ConnectionState.CONNECTING

        with _tracer.start_as_current_span("mcp.connect") as span:
            argv = build_command(
                command,
                args,
                auto_inject_auth=self._auto_inject_auth,
                profile_path=self._profile_path,
            )
            span.set_attribute(ATTR_COMMAND, argv[0])
            logger.info("Resolved command: %s", argv[0])

            supervisor = ProcessSupervisor(grace_period=self._grace_period)
            self._supervisor = supervisor
            try:
                process = await supervisor.start(argv, working_directory=working_directory)
            except MCPLinkError as exc:
                return await self._fail(str(exc), span)

            span.set_attribute(ATTR_PID, process.pid)
            self._transport = StdioTransport(process)
            self._state = ConnectionState.AWAITING_INIT

            try:
                response = await self._handshake()
            except TransportClosedError as exc:
                stderr = await supervisor.stderr_tail()
                return await self._fail(stderr or str(exc), span)

            if response is not None and "result" in response:
                logger.info("MCP server initialized successfully")
                await self._send_initialized()
                await asyncio.sleep(self._settle_delay)
                self._state = ConnectionState.READY
                span.set_attribute(ATTR_CONNECTED, True)
                return True

            if response is not None and "error" in response:
                message = error_message(response) or "initialize failed"
                logger.error("MCP init error: %s", message)
                return await self._fail(message, span)

            stderr = await supervisor.stderr_tail()
            if supervisor.alive:
                logger.warning("Process still alive but no init response")
            logger.error("No init response. stderr: %s", stderr)
            span.set_attribute(ATTR_TIMED_OUT, True)
            return await self._fail(stderr or NO_RESPONSE_ERROR, span)

    async def disconnect(self) -> None:
        """Terminate the server process and drop the transport.  Idempotent."""
        if self._supervisor is not None:
            logger.info("Disconnecting from MCP server")
        await self._teardown()

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def list_tools(self, *, timeout: float | None = None) -> list[ToolDescriptor]:
        """Send ``tools/list`` and return the advertised tools.

        Entries without a name are skipped.  Any failure yields ``[]``.
        """
        if self.state is not ConnectionState.READY:
            logger.warning("list_tools called while not connected")
            return []

        with _tracer.start_as_current_span("mcp.list_tools") as span:
            response = await self._exchange("tools/list", None, timeout)
            if response is None:
                return []
            if "error" in response:
                logger.error("tools/list failed: %s", error_message(response))
                return []

            result = response.get("result")
            raw_tools = result.get("tools") if isinstance(result, dict) else None
            if not isinstance(raw_tools, list):
                logger.warning("Response does not contain a 'tools' array: %s", result)
                return []

            tools: list[ToolDescriptor] = []
            for raw in raw_tools:
                descriptor = ToolDescriptor.from_wire(raw)
                if descriptor is None:
                    logger.debug("Skipping malformed tool entry: %r", raw)
                    continue
                tools.append(descriptor)
            span.set_attribute(ATTR_TOOL_COUNT, len(tools))
            return tools

    async def call_tool(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        """Send ``tools/call`` and return the raw response.

        The caller inspects ``result`` or ``error``.  Returns ``None`` when not
        connected, on timeout, or if the transport fails.
        """
        if self.state is not ConnectionState.READY:
            logger.warning("call_tool(%s) called while not connected", name)
            return None

        with _tracer.start_as_current_span("mcp.call_tool") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            params = {"name": name, "arguments": encode_arguments(arguments)}
            response = await self._exchange("tools/call", params, timeout)
            if response is None:
                span.set_attribute(ATTR_TIMED_OUT, True)
            elif "error" in response:
                span.set_attribute(ATTR_ERROR, error_message(response) or "")
            return response

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_request(self, method: str, params: dict[str, Any] | None) -> JsonRpcRequest:
        self._next_id += 1
        return JsonRpcRequest(id=self._next_id, method=method, params=params)

    async def _handshake(self) -> dict[str, Any] | None:
        params = {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": dict(self._client_info),
        }
        logger.info(
            "Waiting for initialization response (timeout: %ss, login may require a browser)",
            self._handshake_timeout,
        )
        async with self._lock:
            transport = self._transport
            if transport is None:
                raise TransportClosedError()
            request = self._next_request("initialize", params)
            await transport.send(request.to_wire())
            return await transport.receive(self._handshake_timeout, expected_id=request.id)

    async def _send_initialized(self) -> None:
        if self._transport is None:
            return
        try:
            await self._transport.send(JsonRpcNotification(method="notifications/initialized").to_wire())
            logger.info("Sent initialized notification")
        except TransportClosedError as exc:
            logger.error("Error sending initialized notification: %s", exc)

    async def _exchange(
        self,
        method: str,
        params: dict[str, Any] | None,
        timeout: float | None,
    ) -> dict[str, Any] | None:
        """One serialized write+read pair; ``None`` on any transport failure."""
        async with self._lock:
            transport = self._transport
            if transport is None or not transport.alive:
                logger.warning("%s skipped: MCP server not connected", method)
                return None
            request = self._next_request(method, params)
            with _tracer.start_as_current_span("mcp.exchange") as span:
                span.set_attribute(ATTR_REQUEST_ID, request.id)
                try:
                    await transport.send(request.to_wire())
                except TransportClosedError as exc:
                    logger.error("Error sending %s: %s", method, exc)
                    return None
                response = await transport.receive(
                    self._request_timeout if timeout is None else timeout,
                    expected_id=request.id,
                )

            if response is None and self._supervisor is not None and not self._supervisor.alive:
                logger.error("Process died while waiting for response: %s", await self._supervisor.stderr_tail())
            return response

    async def _fail(self, message: str, span: Any) -> bool:
        self._last_error = message
        span.set_attribute(ATTR_CONNECTED, False)
        span.set_attribute(ATTR_ERROR, message)
        logger.error("Error connecting to MCP server: %s", message)
        await self._teardown()
        return False

    async def _teardown(self) -> None:
        transport, self._transport = self._transport, None
        supervisor, self._supervisor = self._supervisor, None
        if transport is not None:
            transport.close()
        if supervisor is not None:
            await supervisor.terminate()
        self._next_id = 0
        self._state = ConnectionState.DISCONNECTED
