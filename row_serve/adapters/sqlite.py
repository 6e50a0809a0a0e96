"""SQLite adapter using aiosqlite."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from urllib.parse import urlencode

from row_serve.core.dsn import DSN

# Python type -> SQLite storage class
_STORAGE_CLASSES: dict[type, str] = {
    int: "INTEGER",
    float: "REAL",
    str: "TEXT",
    bytes: "BLOB",
}


class SqliteHandle:
    """An open aiosqlite connection in autocommit mode."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    @property
    def paramstyle(self) -> str:
        return "qmark"

    async def ping(self) -> None:
        """Run a trivial query against the database."""
        cursor = await self._connection.execute("SELECT 1")
        try:
            await cursor.fetchone()
        finally:
            await cursor.close()

    async def query(self, sql: str, args: tuple[Any, ...]) -> Any:
        """Execute SQL and return a cursor."""
        return await self._connection.execute(sql, args)

    async def fetch_all(self, cursor: Any) -> list[Sequence[Any]]:
        """Fetch all rows as tuples."""
        if cursor.description is None:
            return []
        return [tuple(row) for row in await cursor.fetchall()]

    def column_types(self, cursor: Any, rows: Sequence[Sequence[Any]]) -> list[str]:
        """Infer each column's storage class from its first non-null value.

        sqlite3 does not report declared column types on a cursor.
        """
        types: list[str] = []
        for index in range(len(cursor.description or ())):
            value = next((row[index] for row in rows if row[index] is not None), None)
            types.append(_STORAGE_CLASSES.get(type(value), "NULL"))
        return types

    async def release(self, cursor: Any) -> None:
        """Close the cursor."""
        await cursor.close()

    async def execute(self, sql: str, args: tuple[Any, ...]) -> tuple[int, int]:
        """Execute a statement and report its change count and last row id.

        The change count is taken from the connection's ``total_changes``
        delta so DDL reports 0 rather than the cursor's -1.
        """
        before = self._connection.total_changes
        cursor = await self._connection.execute(sql, args)
        try:
            last_insert_id = cursor.lastrowid
        finally:
            await cursor.close()
        rows_affected = self._connection.total_changes - before
        return rows_affected, last_insert_id if last_insert_id is not None else -1

    async def close(self) -> None:
        """Close the connection."""
        await self._connection.close()


class SqliteDriver:
    """Opens SQLite databases, file-backed or ``:memory:``."""

    async def open(self, dsn: DSN) -> SqliteHandle:
        """Open the database named by the DSN path."""
        import aiosqlite

        database = dsn.database
        uri = False
        if dsn.options:
            database = f"file:{dsn.database}?{urlencode(dsn.options)}"
            uri = True
        connection = await aiosqlite.connect(database, isolation_level=None, uri=uri)
        return SqliteHandle(connection)
