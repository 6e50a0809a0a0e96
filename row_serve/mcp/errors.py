"""JSON-RPC error codes and constructors for error envelopes."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from row_serve.core.exceptions import ProtocolError


class ErrorCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


def invalid_request(detail: str) -> ProtocolError:
    return ProtocolError(ErrorCode.INVALID_REQUEST, "Invalid Request", detail)


def invalid_params(detail: str) -> ProtocolError:
    """Caller-fault parameter problem; the message names the problem."""
    return ProtocolError(ErrorCode.INVALID_PARAMS, detail)


def internal_error(message: str, cause: BaseException | str | None = None) -> ProtocolError:
    """Server-side failure; the underlying message travels as ``data``."""
    return ProtocolError(
        ErrorCode.INTERNAL_ERROR, message, str(cause) if cause is not None else None
    )


def require_object(params: Any) -> dict[str, Any]:
    if not isinstance(params, dict):
        raise invalid_params("params must be an object")
    return params


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_params(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Validate a parameter bag into *model* once, at the boundary.

    Raises:
        ProtocolError: ``INVALID_PARAMS`` naming the first offending field.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "params"
        if error["type"] == "missing":
            raise invalid_params(f"{field} is required") from None
        raise invalid_params(f"{field}: {error['msg']}") from None
