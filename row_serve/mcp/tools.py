"""Tools callable through ``tools/call``.

Each tool is a tagged variant: its name selects a typed argument model and
a handler. Arguments are validated into the model once, then the handler
works only with typed fields.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, StrictStr

from row_serve.core.exceptions import (
    ConnectionNotFoundError,
    ExecutionError,
    RowServeError,
)
from row_serve.core.params import coerce_args
from row_serve.mcp.errors import internal_error, invalid_params, parse_params

if TYPE_CHECKING:
    from row_serve.core.connection import Connection
    from row_serve.core.pool import ConnectionPool

logger = logging.getLogger(__name__)

_ARG_ITEMS = {"type": ["string", "number", "integer", "boolean", "null"]}


class CreateConnectionArgs(BaseModel):
    connection_id: StrictStr = Field(min_length=1)
    dsn: StrictStr = Field(min_length=1)


class CloseConnectionArgs(BaseModel):
    connection_id: StrictStr = Field(min_length=1)


class ExecuteQueryArgs(BaseModel):
    connection_id: StrictStr = Field(min_length=1)
    query: StrictStr = Field(min_length=1)
    args: list[Any] | None = None


class ExecuteStatementArgs(BaseModel):
    connection_id: StrictStr = Field(min_length=1)
    statement: StrictStr = Field(min_length=1)
    args: list[Any] | None = None


@dataclass(frozen=True)
class Tool:
    """Catalogue entry binding a tool name to its schema, model and handler."""

    name: str
    description: str
    input_schema: dict[str, Any]
    args_model: type[BaseModel]
    handler: Callable[[ToolSet, Any], Awaitable[dict[str, Any]]]

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def text_content(text: str) -> dict[str, Any]:
    """Wrap text in a tool result."""
    return {"content": [{"type": "text", "text": text}]}


def json_content(data: Any) -> dict[str, Any]:
    return text_content(json.dumps(data, indent=2, default=str))


class ToolSet:
    """The fixed set of tools, bound to one connection pool."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @property
    def names(self) -> list[str]:
        return list(TOOLS)

    def catalogue(self) -> list[dict[str, Any]]:
        return [tool.describe() for tool in TOOLS.values()]

    async def call(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        tool = TOOLS.get(name)
        if tool is None:
            raise invalid_params(f"unknown tool: {name}")
        args = parse_params(tool.args_model, arguments)
        return await tool.handler(self, args)

    def _connection(self, connection_id: str) -> Connection:
        try:
            return self._pool.get_connection(connection_id)
        except ConnectionNotFoundError:
            raise invalid_params(f"connection not found: {connection_id}") from None

    async def create_connection(self, args: CreateConnectionArgs) -> dict[str, Any]:
        try:
            await self._pool.create_connection(args.connection_id, args.dsn)
        except RowServeError as e:
            raise internal_error("Connection creation failed", e) from e
        return text_content(f"Successfully created connection: {args.connection_id}")

    async def close_connection(self, args: CloseConnectionArgs) -> dict[str, Any]:
        try:
            await self._pool.close_connection(args.connection_id)
        except ConnectionNotFoundError:
            raise invalid_params(f"connection not found: {args.connection_id}") from None
        return text_content(f"Successfully closed connection: {args.connection_id}")

    async def execute_query(self, args: ExecuteQueryArgs) -> dict[str, Any]:
        conn = self._connection(args.connection_id)
        try:
            result = await conn.execute_query(args.query, *coerce_args(args.args))
        except ExecutionError as e:
            raise internal_error("Query execution failed", e) from e
        return json_content(result.to_dict())

    async def execute_statement(self, args: ExecuteStatementArgs) -> dict[str, Any]:
        conn = self._connection(args.connection_id)
        try:
            result = await conn.execute_statement(args.statement, *coerce_args(args.args))
        except ExecutionError as e:
            raise internal_error("Statement execution failed", e) from e
        return json_content(result.to_dict())


TOOLS: dict[str, Tool] = {
    tool.name: tool
    for tool in (
        Tool(
            name="execute_query",
            description="Execute a SQL query on a database connection",
            input_schema={
                "type": "object",
                "properties": {
                    "connection_id": {
                        "type": "string",
                        "description": "The ID of the database connection to use",
                    },
                    "query": {"type": "string", "description": "The SQL query to execute"},
                    "args": {
                        "type": "array",
                        "description": (
                            "Optional query arguments, bound positionally in the "
                            "placeholder style reported as paramstyle by connections://list"
                        ),
                        "items": _ARG_ITEMS,
                    },
                },
                "required": ["connection_id", "query"],
            },
            args_model=ExecuteQueryArgs,
            handler=ToolSet.execute_query,
        ),
        Tool(
            name="create_connection",
            description="Create a new database connection",
            input_schema={
                "type": "object",
                "properties": {
                    "connection_id": {
                        "type": "string",
                        "description": "A unique identifier for the connection",
                    },
                    "dsn": {
                        "type": "string",
                        "description": "The database connection string (DSN)",
                    },
                },
                "required": ["connection_id", "dsn"],
            },
            args_model=CreateConnectionArgs,
            handler=ToolSet.create_connection,
        ),
        Tool(
            name="close_connection",
            description="Close an existing database connection",
            input_schema={
                "type": "object",
                "properties": {
                    "connection_id": {
                        "type": "string",
                        "description": "The ID of the connection to close",
                    },
                },
                "required": ["connection_id"],
            },
            args_model=CloseConnectionArgs,
            handler=ToolSet.close_connection,
        ),
        Tool(
            name="execute_statement",
            description="Execute a SQL statement (INSERT, UPDATE, DELETE, etc.)",
            input_schema={
                "type": "object",
                "properties": {
                    "connection_id": {
                        "type": "string",
                        "description": "The ID of the database connection to use",
                    },
                    "statement": {
                        "type": "string",
                        "description": "The SQL statement to execute",
                    },
                    "args": {
                        "type": "array",
                        "description": (
                            "Optional statement arguments, bound positionally in the "
                            "placeholder style reported as paramstyle by connections://list"
                        ),
                        "items": _ARG_ITEMS,
                    },
                },
                "required": ["connection_id", "statement"],
            },
            args_model=ExecuteStatementArgs,
            handler=ToolSet.execute_statement,
        ),
    )
}
