"""JSON-RPC 2.0 envelope handling and method dispatch.

The Dispatcher is stateless apart from the injected pool: every inbound
body is decoded, its envelope validated, routed to one handler from a fixed
table, and answered with exactly one success or error envelope.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from row_serve.core.exceptions import ProtocolError
from row_serve.mcp.errors import ErrorCode, invalid_params, invalid_request, require_object
from row_serve.mcp.resources import ResourceSet
from row_serve.mcp.tools import ToolSet

if TYPE_CHECKING:
    from row_serve.core.config import ServerConfig
    from row_serve.core.pool import ConnectionPool

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"
RESERVED_METHOD_PREFIX = "rpc."

RequestId = str | int | float | None


class JSONRPCRequest(BaseModel):
    """A validated JSON-RPC 2.0 request."""

    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: dict[str, Any] | list[Any] | None = None
    id: RequestId = None


class JSONRPCError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any | None = None


class JSONRPCResponse(BaseModel):
    """JSON-RPC 2.0 response carrying either ``result`` or ``error``."""

    jsonrpc: str = JSONRPC_VERSION
    result: Any | None = None
    error: JSONRPCError | None = None
    id: RequestId = None

    @classmethod
    def success(cls, request_id: RequestId, result: Any) -> JSONRPCResponse:
        return cls(result=result, id=request_id)

    @classmethod
    def failure(
        cls,
        request_id: RequestId,
        code: int,
        message: str,
        data: Any = None,
    ) -> JSONRPCResponse:
        return cls(error=JSONRPCError(code=code, message=message, data=data), id=request_id)

    def to_dict(self) -> dict[str, Any]:
        """Render the envelope; exactly one of result/error is present."""
        body: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            body["error"] = self.error.model_dump(exclude_none=True)
        else:
            body["result"] = self.result
        return body


def _is_request_id(value: Any) -> bool:
    return value is None or (
        isinstance(value, (str, int, float)) and not isinstance(value, bool)
    )


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not valid JSON and cannot be echoed back
    raise ValueError(f"invalid JSON constant: {name}")


def recover_id(payload: Any) -> RequestId:
    """Best-effort extraction of the caller's id from a raw payload."""
    if isinstance(payload, dict):
        value = payload.get("id")
        if _is_request_id(value):
            return value
    return None


def validate_request(payload: Any) -> JSONRPCRequest:
    """Check the envelope shape of a decoded request.

    Raises:
        ProtocolError: ``INVALID_REQUEST`` with the reason as data.
    """
    if not isinstance(payload, dict):
        raise invalid_request("request must be a JSON object")
    if payload.get("jsonrpc") != JSONRPC_VERSION:
        raise invalid_request(f"invalid JSON-RPC version: {payload.get('jsonrpc')}")

    method = payload.get("method")
    if not isinstance(method, str) or not method:
        raise invalid_request("missing method")
    if method.startswith(RESERVED_METHOD_PREFIX):
        raise invalid_request(f"method name cannot start with '{RESERVED_METHOD_PREFIX}'")

    if not _is_request_id(payload.get("id")):
        raise invalid_request("id must be a string, number or null")
    params = payload.get("params")
    if params is not None and not isinstance(params, (dict, list)):
        raise invalid_request("params must be an object or array")

    return JSONRPCRequest(
        jsonrpc=JSONRPC_VERSION,
        method=method,
        params=params,
        id=payload.get("id"),
    )


class Dispatcher:
    """Routes JSON-RPC requests to the tool and resource operations.

    Args:
        pool: The connection pool every operation acts on.
        config: Server configuration (reported identity).
    """

    def __init__(self, pool: ConnectionPool, config: ServerConfig) -> None:
        self._pool = pool
        self._config = config
        self._tools = ToolSet(pool)
        self._resources = ResourceSet(pool)
        self._routes: dict[str, Callable[[Any], Awaitable[Any]]] = {
            "initialize": self._initialize,
            "capabilities": self._capabilities,
            "resources/list": self._resources_list,
            "resources/read": self._resources_read,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }

    @property
    def methods(self) -> list[str]:
        return sorted(self._routes)

    async def handle_raw(self, body: bytes | str) -> dict[str, Any]:
        """Decode a request body and handle it."""
        try:
            payload = json.loads(body, parse_constant=_reject_constant)
        except (ValueError, UnicodeDecodeError, RecursionError) as e:
            return JSONRPCResponse.failure(
                None, ErrorCode.PARSE_ERROR, "Parse error", str(e)
            ).to_dict()
        return await self.handle(payload)

    async def handle(self, payload: Any) -> dict[str, Any]:
        """Handle one decoded request and return the response envelope."""
        request_id = recover_id(payload)
        try:
            request = validate_request(payload)
            route = self._routes.get(request.method)
            if route is None:
                raise ProtocolError(
                    ErrorCode.METHOD_NOT_FOUND, "Method not found", request.method
                )
            result = await route(request.params)
        except ProtocolError as e:
            return JSONRPCResponse.failure(request_id, e.code, e.message, e.data).to_dict()
        except Exception as e:
            logger.exception("unhandled error while handling request %r", request_id)
            return JSONRPCResponse.failure(
                request_id, ErrorCode.INTERNAL_ERROR, "Internal error", str(e)
            ).to_dict()
        return JSONRPCResponse.success(request_id, result).to_dict()

    async def _initialize(self, params: Any) -> dict[str, Any]:
        return {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "capabilities": {
                "resources": {"subscribe": False, "listChanged": False},
                "tools": {},
            },
            "serverInfo": {
                "name": self._config.server_name,
                "version": self._config.server_version,
            },
        }

    async def _capabilities(self, params: Any) -> dict[str, Any]:
        return {
            "resources": self._resources.uris,
            "tools": self._tools.names,
        }

    async def _resources_list(self, params: Any) -> dict[str, Any]:
        return {"resources": self._resources.catalogue()}

    async def _resources_read(self, params: Any) -> dict[str, Any]:
        return await self._resources.read(require_object(params))

    async def _tools_list(self, params: Any) -> dict[str, Any]:
        return {"tools": self._tools.catalogue()}

    async def _tools_call(self, params: Any) -> dict[str, Any]:
        params = require_object(params)
        name = params.get("name")
        if not isinstance(name, str):
            raise invalid_params("name is required")
        arguments = params.get("arguments")
        if not isinstance(arguments, dict):
            raise invalid_params("arguments is required")
        return await self._tools.call(name, arguments)
