"""row-serve - pooled database connections over JSON-RPC."""

from __future__ import annotations

from row_serve.core.config import ServerConfig, load_config
from row_serve.core.connection import (
    Connection,
    ConnectionInfo,
    QueryResult,
    StatementResult,
)
from row_serve.core.dsn import DSN, parse_dsn
from row_serve.core.enums import DatabaseBackend
from row_serve.core.exceptions import (
    BackendUnreachableError,
    ColumnIntrospectionError,
    ConfigError,
    ConnectionNotFoundError,
    ConnectionOpenError,
    DriverError,
    DuplicateConnectionError,
    ExecutionError,
    InvalidDSNError,
    OperationTimeoutError,
    PoolCapacityError,
    PoolError,
    ProtocolError,
    QueryExecutionError,
    RowIterationError,
    RowScanError,
    RowServeError,
    StatementExecutionError,
)
from row_serve.core.pool import ConnectionPool
from row_serve.mcp.protocol import Dispatcher

__all__ = [
    # Config
    "ServerConfig",
    "load_config",
    # Pool
    "ConnectionPool",
    "Connection",
    "ConnectionInfo",
    "QueryResult",
    "StatementResult",
    # DSN
    "DSN",
    "parse_dsn",
    # Enums
    "DatabaseBackend",
    # Protocol
    "Dispatcher",
    # Exceptions
    "RowServeError",
    "ConfigError",
    "PoolError",
    "DuplicateConnectionError",
    "PoolCapacityError",
    "ConnectionNotFoundError",
    "DriverError",
    "InvalidDSNError",
    "ConnectionOpenError",
    "BackendUnreachableError",
    "ExecutionError",
    "QueryExecutionError",
    "ColumnIntrospectionError",
    "RowScanError",
    "RowIterationError",
    "StatementExecutionError",
    "OperationTimeoutError",
    "ProtocolError",
]
