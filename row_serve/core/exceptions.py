"""row-serve exception hierarchy.

All exceptions are row-serve specific. Raw driver exceptions are chained
as ``__cause__`` and never escape the adapter and connection layer.
"""

from __future__ import annotations

from typing import Any


class RowServeError(Exception):
    """Base exception for all row-serve errors."""


class ConfigError(RowServeError):
    """Raised when the server configuration cannot be loaded."""


# --- Pool ---


class PoolError(RowServeError):
    """Base for connection pool errors."""


class DuplicateConnectionError(PoolError):
    """Raised when a connection id is already present in the pool."""

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        super().__init__(f"connection with ID {connection_id} already exists")


class PoolCapacityError(PoolError):
    """Raised when the pool is already at its connection ceiling."""

    def __init__(self, max_connections: int) -> None:
        self.max_connections = max_connections
        super().__init__(f"connection pool limit reached (max: {max_connections})")


class ConnectionNotFoundError(PoolError):
    """Raised when no connection is registered under the given id."""

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        super().__init__(f"connection with ID {connection_id} not found")


# --- Driver ---


class DriverError(RowServeError):
    """Base for DSN resolution and driver errors."""


class InvalidDSNError(DriverError):
    """Raised when a connection string cannot be parsed."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"failed to parse DSN: {detail}")


class ConnectionOpenError(DriverError):
    """Raised when the driver fails to open a database handle."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"failed to open database connection: {detail}")


class BackendUnreachableError(DriverError):
    """Raised when a liveness probe against an open handle fails."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"failed to ping database: {detail}")


# --- Execution ---


class ExecutionError(RowServeError):
    """Base for query and statement execution errors."""


class QueryExecutionError(ExecutionError):
    """Raised when the backend rejects a query."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"query execution failed: {detail}")


class ColumnIntrospectionError(ExecutionError):
    """Raised when column names or types cannot be read from a result."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"failed to get columns: {detail}")


class RowScanError(ExecutionError):
    """Raised when a fetched row does not match the result's columns."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"failed to scan row: {detail}")


class RowIterationError(ExecutionError):
    """Raised when fetching rows from the backend fails midway."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"row iteration error: {detail}")


class StatementExecutionError(ExecutionError):
    """Raised when the backend rejects a statement."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"statement execution failed: {detail}")


class OperationTimeoutError(ExecutionError):
    """Raised when a backend operation exceeds its time budget."""

    def __init__(self, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:g}s")


# --- Protocol ---


class ProtocolError(RowServeError):
    """A JSON-RPC error to be rendered into an error envelope."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)
