"""mcplink: stdio JSON-RPC client and process supervisor for MCP tool servers."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from mcplink.mcp.client import MCPClient as MCPClient
    from mcplink.mcp.service import MCPClientService as MCPClientService

_LAZY_EXPORTS = {
    "MCPClient": "mcplink.mcp.client",
    "MCPClientService": "mcplink.mcp.service",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'mcplink' has no attribute {name!r}")
