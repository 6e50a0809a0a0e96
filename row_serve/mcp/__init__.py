"""JSON-RPC surface: the Dispatcher plus its tool and resource sets."""

from row_serve.mcp.protocol import (
    JSONRPC_VERSION,
    MCP_PROTOCOL_VERSION,
    Dispatcher,
    JSONRPCError,
    JSONRPCRequest,
    JSONRPCResponse,
)
from row_serve.mcp.resources import ResourceSet
from row_serve.mcp.tools import ToolSet

__all__ = [
    "JSONRPC_VERSION",
    "MCP_PROTOCOL_VERSION",
    "Dispatcher",
    "JSONRPCError",
    "JSONRPCRequest",
    "JSONRPCResponse",
    "ResourceSet",
    "ToolSet",
]
