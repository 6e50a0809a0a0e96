"""A single pooled database connection.

Connection owns one driver ``Handle`` plus its identifying metadata. Every
operation on the handle runs inside the connection's own lock together with
the last-used update, so two operations on the same connection never
interleave while operations on different connections never contend.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from row_serve.adapters.protocol import Handle
from row_serve.core.dsn import DSN
from row_serve.core.exceptions import (
    BackendUnreachableError,
    ColumnIntrospectionError,
    OperationTimeoutError,
    QueryExecutionError,
    RowIterationError,
    RowScanError,
    StatementExecutionError,
)
from row_serve.core.params import to_transport

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@asynccontextmanager
async def deadline(operation: str, timeout: float | None) -> AsyncIterator[None]:
    """Bound the enclosed awaits by *timeout* seconds.

    Raises:
        OperationTimeoutError: If the budget runs out. The pending driver
            call is cancelled rather than awaited to completion.
    """
    if timeout is None:
        yield
        return
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as e:
        raise OperationTimeoutError(operation, timeout) from e


@dataclass(frozen=True)
class QueryResult:
    """Fully materialized query result."""

    columns: list[str]
    column_types: list[str]
    rows: list[list[Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StatementResult:
    """Outcome of a statement. Either field is -1 when the backend cannot report it."""

    rows_affected: int
    last_insert_id: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ConnectionInfo:
    """Read-only description of a pooled connection.

    ``paramstyle`` names the placeholder syntax the backend binds ``args``
    with: ``qmark`` (?), ``format`` (%s) or ``numeric`` (:1).
    """

    id: str
    driver: str
    host: str
    database: str
    paramstyle: str
    created: datetime
    last_used: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created"] = self.created.isoformat()
        data["last_used"] = self.last_used.isoformat()
        return data


class Connection:
    """A database handle registered in a ConnectionPool under ``id``."""

    def __init__(
        self,
        connection_id: str,
        dsn: DSN,
        handle: Handle,
        *,
        default_timeout: float | None = None,
    ) -> None:
        self.id = connection_id
        self.dsn = dsn
        self._handle = handle
        self._default_timeout = default_timeout
        self._lock = asyncio.Lock()
        self.created = _utcnow()
        self.last_used = self.created

    def touch(self) -> None:
        """Record that the connection was just used."""
        self.last_used = _utcnow()

    def info(self) -> ConnectionInfo:
        return ConnectionInfo(
            id=self.id,
            driver=self.dsn.driver,
            host=self.dsn.host or "",
            database=self.dsn.database,
            paramstyle=self._handle.paramstyle,
            created=self.created,
            last_used=self.last_used,
        )

    async def execute_query(
        self,
        query: str,
        *args: Any,
        timeout: float | None = None,
    ) -> QueryResult:
        """Run a query and read every row into memory.

        Raises:
            QueryExecutionError: The backend rejected the query.
            ColumnIntrospectionError: Column names or types are unavailable.
            RowIterationError: Fetching rows failed midway.
            RowScanError: A row's width does not match the columns.
            OperationTimeoutError: The timeout expired.
        """
        async with self._lock:
            self.touch()
            async with deadline("query", self._timeout(timeout)):
                return await self._run_query(query, args)

    async def execute_statement(
        self,
        statement: str,
        *args: Any,
        timeout: float | None = None,
    ) -> StatementResult:
        """Run a non-query statement (INSERT, UPDATE, DELETE, DDL...).

        Raises:
            StatementExecutionError: The backend rejected the statement.
            OperationTimeoutError: The timeout expired.
        """
        async with self._lock:
            self.touch()
            async with deadline("statement", self._timeout(timeout)):
                try:
                    rows_affected, last_insert_id = await self._handle.execute(statement, args)
                except Exception as e:
                    raise StatementExecutionError(str(e)) from e
        return StatementResult(
            rows_affected=_sentinel(rows_affected),
            last_insert_id=_sentinel(last_insert_id),
        )

    async def ping(self, timeout: float | None = None) -> None:
        """Probe the backend for liveness.

        Raises:
            BackendUnreachableError: The probe failed.
            OperationTimeoutError: The timeout expired.
        """
        async with self._lock:
            self.touch()
            async with deadline("ping", self._timeout(timeout)):
                try:
                    await self._handle.ping()
                except Exception as e:
                    raise BackendUnreachableError(str(e)) from e

    async def close(self) -> None:
        """Close the handle once in-flight operations have finished."""
        async with self._lock:
            await self._handle.close()

    async def _run_query(self, query: str, args: tuple[Any, ...]) -> QueryResult:
        try:
            cursor = await self._handle.query(query, args)
        except Exception as e:
            raise QueryExecutionError(str(e)) from e

        try:
            try:
                columns = [str(desc[0]) for desc in cursor.description or ()]
            except Exception as e:
                raise ColumnIntrospectionError(str(e)) from e

            try:
                raw_rows = await self._handle.fetch_all(cursor)
            except Exception as e:
                raise RowIterationError(str(e)) from e

            rows = [_scan_row(raw, len(columns)) for raw in raw_rows]

            try:
                column_types = self._handle.column_types(cursor, raw_rows)
            except Exception as e:
                raise ColumnIntrospectionError(str(e)) from e
            if len(column_types) != len(columns):
                raise ColumnIntrospectionError(
                    f"got {len(column_types)} column types for {len(columns)} columns"
                )
        finally:
            await self._release(cursor)

        return QueryResult(columns=columns, column_types=column_types, rows=rows)

    async def _release(self, cursor: Any) -> None:
        try:
            await self._handle.release(cursor)
        except Exception as e:
            logger.warning("failed to close cursor on connection %s: %s", self.id, e)

    def _timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self._default_timeout


def _scan_row(raw: Sequence[Any], width: int) -> list[Any]:
    values = list(raw)
    if len(values) != width:
        raise RowScanError(f"expected {width} values, got {len(values)}")
    return [to_transport(value) for value in values]


def _sentinel(value: int | None) -> int:
    """Normalize a driver count to an int, with -1 meaning 'not reported'."""
    if value is None or value < 0:
        return -1
    return int(value)
