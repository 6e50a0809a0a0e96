"""Resources readable through ``resources/read``."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, StrictStr

from row_serve.core.connection import QueryResult
from row_serve.core.enums import DatabaseBackend
from row_serve.core.exceptions import (
    ConnectionNotFoundError,
    ExecutionError,
    OperationTimeoutError,
    RowServeError,
)
from row_serve.mcp.errors import internal_error, invalid_params, parse_params

if TYPE_CHECKING:
    from row_serve.core.pool import ConnectionPool

logger = logging.getLogger(__name__)

CONNECTIONS_LIST = "connections://list"
CONNECTIONS_STATUS = "connections://status"
SCHEMA_INFO = "schema://info"

RESOURCES: list[dict[str, str]] = [
    {
        "uri": CONNECTIONS_LIST,
        "name": "Database Connections",
        "description": "List all active database connections",
        "mimeType": "application/json",
    },
    {
        "uri": CONNECTIONS_STATUS,
        "name": "Connection Status",
        "description": "Check the health status of database connections",
        "mimeType": "application/json",
    },
    {
        "uri": SCHEMA_INFO,
        "name": "Schema Information",
        "description": "Get database schema information for a connection",
        "mimeType": "application/json",
    },
]

_INFORMATION_SCHEMA_TABLES = (
    "SELECT table_name FROM information_schema.tables "
    "WHERE table_schema NOT IN ('information_schema', 'performance_schema', 'mysql', "
    "'sys', 'pg_catalog') ORDER BY table_name LIMIT 100"
)

# Table listing per backend
_SCHEMA_QUERIES: dict[DatabaseBackend, str] = {
    DatabaseBackend.SQLITE: (
        "SELECT name AS table_name FROM sqlite_master "
        "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name LIMIT 100"
    ),
    DatabaseBackend.POSTGRESQL: _INFORMATION_SCHEMA_TABLES,
    DatabaseBackend.MYSQL: _INFORMATION_SCHEMA_TABLES,
    DatabaseBackend.ORACLE: (
        "SELECT table_name FROM user_tables ORDER BY table_name FETCH FIRST 100 ROWS ONLY"
    ),
}

SCHEMA_UNAVAILABLE = QueryResult(
    columns=["note"],
    column_types=["text"],
    rows=[["Schema information not available for this database type"]],
)


class ReadResourceParams(BaseModel):
    uri: StrictStr
    connection_id: StrictStr | None = Field(default=None, min_length=1)


def resource_contents(uri: str, data: Any) -> dict[str, Any]:
    return {
        "contents": [
            {
                "uri": uri,
                "mimeType": "application/json",
                "text": json.dumps(data, indent=2, default=str),
            }
        ]
    }


class ResourceSet:
    """The fixed set of resources, bound to one connection pool."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @property
    def uris(self) -> list[str]:
        return [resource["uri"] for resource in RESOURCES]

    def catalogue(self) -> list[dict[str, str]]:
        return [dict(resource) for resource in RESOURCES]

    async def read(self, params: dict[str, Any]) -> dict[str, Any]:
        """Route by exact URI, or by prefix for ``schema://info/<connection_id>``."""
        args = parse_params(ReadResourceParams, params)
        uri = args.uri

        if uri == CONNECTIONS_LIST:
            return self.connections_list()
        if uri == CONNECTIONS_STATUS:
            return await self.connections_status()
        if uri == SCHEMA_INFO or uri.startswith(SCHEMA_INFO + "/"):
            connection_id = uri[len(SCHEMA_INFO) + 1 :] or args.connection_id
            if not connection_id:
                raise invalid_params("connection_id is required for schema info")
            return await self.schema_info(connection_id)
        raise invalid_params(f"unknown resource URI: {uri}")

    def connections_list(self) -> dict[str, Any]:
        snapshot = self._pool.list_connections()
        return resource_contents(
            CONNECTIONS_LIST, {cid: info.to_dict() for cid, info in snapshot.items()}
        )

    async def connections_status(self) -> dict[str, Any]:
        ids = list(self._pool.list_connections())
        outcomes = await asyncio.gather(*(self._probe(cid) for cid in ids))
        return resource_contents(CONNECTIONS_STATUS, dict(zip(ids, outcomes, strict=True)))

    async def schema_info(self, connection_id: str) -> dict[str, Any]:
        try:
            conn = self._pool.get_connection(connection_id)
        except ConnectionNotFoundError:
            raise invalid_params(f"connection not found: {connection_id}") from None

        query = _SCHEMA_QUERIES[conn.dsn.backend]
        try:
            result = await conn.execute_query(query)
        except OperationTimeoutError as e:
            raise internal_error("Schema introspection failed", e) from e
        except ExecutionError as e:
            logger.info("schema introspection unsupported on %s: %s", connection_id, e)
            result = SCHEMA_UNAVAILABLE
        return resource_contents(SCHEMA_INFO, result.to_dict())

    async def _probe(self, connection_id: str) -> dict[str, Any]:
        try:
            await self._pool.check_connection(connection_id)
        except RowServeError as e:
            return {"healthy": False, "error": str(e)}
        return {"healthy": True, "error": None}
