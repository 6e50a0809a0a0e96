"""Unit tests for Connection."""

from __future__ import annotations

import asyncio

import pytest

from row_serve.core.connection import Connection, QueryResult, StatementResult, deadline
from row_serve.core.dsn import parse_dsn
from row_serve.core.exceptions import (
    BackendUnreachableError,
    ColumnIntrospectionError,
    OperationTimeoutError,
    QueryExecutionError,
    RowScanError,
    StatementExecutionError,
)


def _connection(handle, timeout: float | None = 1.0) -> Connection:
    return Connection("c1", parse_dsn("sqlite3://:memory:"), handle, default_timeout=timeout)


class TestDeadline:
    async def test_no_timeout(self) -> None:
        async with deadline("noop", None):
            await asyncio.sleep(0)

    async def test_expiry_raises_operation_timeout(self) -> None:
        with pytest.raises(OperationTimeoutError, match="query timed out after 0.01s"):
            async with deadline("query", 0.01):
                await asyncio.sleep(1)


class TestConnection:
    def test_info_describes_connection(self, make_handle) -> None:
        conn = _connection(make_handle())
        info = conn.info()
        assert info.id == "c1"
        assert info.driver == "sqlite"
        assert info.host == ""
        assert info.database == ":memory:"
        assert info.paramstyle == "qmark"
        assert info.created == info.last_used
        data = info.to_dict()
        assert isinstance(data["created"], str)

    async def test_query_materializes_rows(self, make_handle) -> None:
        handle = make_handle(rows=[(1, b"a"), (2, None)], columns=("id", "name"))
        conn = _connection(handle)
        result = await conn.execute_query("SELECT id, name FROM t")
        assert result == QueryResult(
            columns=["id", "name"],
            column_types=["INTEGER", "INTEGER"],
            rows=[[1, "a"], [2, None]],
        )
        assert all(cursor.closed for cursor in handle.cursors)

    async def test_query_updates_last_used(self, make_handle) -> None:
        conn = _connection(make_handle())
        before = conn.last_used
        await asyncio.sleep(0.001)
        await conn.execute_query("SELECT 1")
        assert conn.last_used > before

    async def test_query_failure(self, make_handle) -> None:
        handle = make_handle()

        async def broken(sql, args):
            raise RuntimeError("syntax error")

        handle.query = broken
        with pytest.raises(QueryExecutionError, match="syntax error"):
            await _connection(handle).execute_query("SELEC 1")

    async def test_row_width_mismatch_releases_cursor(self, make_handle) -> None:
        handle = make_handle(rows=[(1, 2)], columns=("only",))
        with pytest.raises(RowScanError):
            await _connection(handle).execute_query("SELECT 1")
        assert handle.cursors[0].closed

    async def test_column_type_count_mismatch(self, make_handle) -> None:
        handle = make_handle()
        handle.column_types = lambda cursor, rows: []
        with pytest.raises(ColumnIntrospectionError):
            await _connection(handle).execute_query("SELECT 1")

    async def test_statement_result(self, make_handle) -> None:
        result = await _connection(make_handle()).execute_statement("DELETE FROM t")
        assert result == StatementResult(rows_affected=1, last_insert_id=-1)
        assert result.to_dict() == {"rows_affected": 1, "last_insert_id": -1}

    async def test_statement_failure(self, make_handle) -> None:
        handle = make_handle()

        async def broken(sql, args):
            raise RuntimeError("constraint failed")

        handle.execute = broken
        with pytest.raises(StatementExecutionError, match="constraint failed"):
            await _connection(handle).execute_statement("INSERT INTO t VALUES (1)")

    async def test_query_timeout(self, make_handle) -> None:
        conn = _connection(make_handle(delay=1.0), timeout=0.05)
        with pytest.raises(OperationTimeoutError):
            await conn.execute_query("SELECT 1")

    async def test_cancelled_caller_releases_lock(self, make_handle) -> None:
        handle = make_handle(delay=5.0)
        conn = _connection(handle, timeout=None)
        task = asyncio.create_task(conn.execute_query("SELECT 1"))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        handle.delay = 0.0
        result = await asyncio.wait_for(conn.execute_query("SELECT 1"), 1.0)
        assert result.rows == [[1]]

    async def test_timed_out_query_releases_lock(self, make_handle) -> None:
        handle = make_handle(delay=5.0)
        conn = _connection(handle, timeout=0.05)
        with pytest.raises(OperationTimeoutError):
            await conn.execute_query("SELECT 1")

        handle.delay = 0.0
        result = await asyncio.wait_for(conn.execute_query("SELECT 1"), 1.0)
        assert result.rows == [[1]]
        assert handle.active == 0

    async def test_explicit_timeout_overrides_default(self, make_handle) -> None:
        conn = _connection(make_handle(delay=0.2), timeout=0.01)
        result = await conn.execute_query("SELECT 1", timeout=2.0)
        assert result.rows == [[1]]

    async def test_ping_failure(self, make_handle) -> None:
        conn = _connection(make_handle(ping_error=RuntimeError("gone away")))
        with pytest.raises(BackendUnreachableError, match="gone away"):
            await conn.ping()

    async def test_operations_are_serialized(self, make_handle) -> None:
        handle = make_handle(delay=0.02)
        conn = _connection(handle)
        await asyncio.gather(*(conn.execute_query("SELECT 1") for _ in range(5)))
        assert handle.max_active == 1

    async def test_close_closes_handle(self, make_handle) -> None:
        handle = make_handle()
        await _connection(handle).close()
        assert handle.closed
