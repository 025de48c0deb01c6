"""MCP over stdio: process supervision, line transport and client facade."""

from mcplink.mcp.client import ConnectionState, MCPClient
from mcplink.mcp.models import (
    AuthProfile,
    JsonRpcNotification,
    JsonRpcRequest,
    ToolArgument,
    ToolDescriptor,
)
from mcplink.mcp.service import MCPClientService
from mcplink.mcp.transport import StdioTransport

__all__ = [
    "AuthProfile",
    "ConnectionState",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "MCPClient",
    "MCPClientService",
    "StdioTransport",
    "ToolArgument",
    "ToolDescriptor",
]
