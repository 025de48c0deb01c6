"""MCP models: JSON-RPC 2.0 messages, tool descriptors and auth profiles.

Messages travel as one JSON document per line over the server's stdio.
A message is a *response* when it carries ``jsonrpc`` and no ``method``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request message (expects a reply)."""

    jsonrpc: str = JSONRPC_VERSION
    id: int
    method: str
    params: dict[str, Any] | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the wire form, omitting ``params`` when there are none."""
        return self.model_dump(exclude_none=True)


class JsonRpcNotification(BaseModel):
    """A JSON-RPC 2.0 notification (no ``id``, no reply)."""

    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: dict[str, Any] | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def is_protocol_message(message: dict[str, Any]) -> bool:
    """True when *message* carries the JSON-RPC version marker."""
    return "jsonrpc" in message


def is_response(message: dict[str, Any]) -> bool:
    """True when *message* is a reply rather than a request or notification."""
    return is_protocol_message(message) and "method" not in message


def error_message(message: dict[str, Any]) -> str | None:
    """Extract a readable message from a response's ``error`` member, if any."""
    error = message.get("error")
    if error is None:
        return None
    if isinstance(error, dict):
        text = error.get("message")
        if isinstance(text, str) and text:
            return text
    return str(error)


# ---------------------------------------------------------------------------
# MCP payloads
# ---------------------------------------------------------------------------


class ToolArgument(BaseModel):
    """Schema of a single tool parameter (subset of JSON Schema)."""

    model_config = ConfigDict(extra="allow")

    type: str | list[str] | None = None
    description: str | None = None


class ToolDescriptor(BaseModel):
    """A tool as advertised by ``tools/list``.

    ``arguments`` is built from ``inputSchema.properties``; it is empty when the
    server sends no schema.
    """

    name: str
    description: str | None = None
    arguments: dict[str, ToolArgument] = Field(default_factory=lambda: dict[str, ToolArgument]())

    @classmethod
    def from_wire(cls, raw: Any) -> ToolDescriptor | None:
        """Build a descriptor from a raw ``tools/list`` entry.

        Returns ``None`` for entries without a usable ``name``.
        """
        if not isinstance(raw, dict):
            return None
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            return None

        description = raw.get("description")
        if description is not None and not isinstance(description, str):
            description = str(description)

        arguments: dict[str, ToolArgument] = {}
        schema = raw.get("inputSchema")
        properties = schema.get("properties") if isinstance(schema, dict) else None
        if isinstance(properties, dict):
            for param, spec in properties.items():
                try:
                    arguments[str(param)] = ToolArgument.model_validate(spec)
                except ValidationError:
                    arguments[str(param)] = ToolArgument()

        return cls(name=name, description=description, arguments=arguments)


class AuthProfile(BaseModel):
    """Auth parameters read from the local CLI profile; both fields are set."""

    model_config = ConfigDict(frozen=True)

    access_type: str
    access_id: str


def extract_text(response: dict[str, Any]) -> str:
    """Join the ``text`` parts of a ``tools/call`` result."""
    result = response.get("result")
    if not isinstance(result, dict):
        return ""
    content = result.get("content")
    if not isinstance(content, list):
        return str(result)
    parts: list[str] = []
    for item in content:
        if isinstance(item, dict) and item.get("type") == "text":
            parts.append(str(item.get("text", "")))
    return "\n".join(parts) if parts else str(result)
