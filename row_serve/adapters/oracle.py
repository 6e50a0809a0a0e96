"""Oracle adapter using oracledb async support."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from row_serve.core.dsn import DSN


def _build_dsn(dsn: DSN) -> str:
    """Build an Oracle easy-connect string (host:port/service)."""
    return f"{dsn.host}:{dsn.port or 1521}/{dsn.database}"


class OracleHandle:
    """An open oracledb async connection."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    @property
    def paramstyle(self) -> str:
        return "numeric"

    async def ping(self) -> None:
        """Round-trip to the server."""
        await self._connection.ping()

    async def query(self, sql: str, args: tuple[Any, ...]) -> Any:
        """Execute SQL and return a cursor."""
        cursor = self._connection.cursor()
        await cursor.execute(sql, list(args) or None)
        return cursor

    async def fetch_all(self, cursor: Any) -> list[Sequence[Any]]:
        """Fetch all rows as tuples."""
        if cursor.description is None:
            return []
        return list(await cursor.fetchall())

    def column_types(self, cursor: Any, rows: Sequence[Sequence[Any]]) -> list[str]:
        """Use the DbType name of each column, without the DB_TYPE_ prefix."""
        return [
            getattr(desc[1], "name", str(desc[1])).removeprefix("DB_TYPE_")
            for desc in cursor.description or ()
        ]

    async def release(self, cursor: Any) -> None:
        """Close the cursor."""
        cursor.close()

    async def execute(self, sql: str, args: tuple[Any, ...]) -> tuple[int, int]:
        """Execute and commit a statement. Oracle reports no numeric insert id."""
        cursor = self._connection.cursor()
        try:
            await cursor.execute(sql, list(args) or None)
            rows_affected = cursor.rowcount
        finally:
            cursor.close()
        await self._connection.commit()
        return int(rows_affected) if rows_affected is not None else -1, -1

    async def close(self) -> None:
        """Close the connection."""
        await self._connection.close()


class OracleDriver:
    """Opens Oracle connections through easy-connect strings."""

    async def open(self, dsn: DSN) -> OracleHandle:
        """Connect with the DSN's credentials and service name."""
        import oracledb

        connection = await oracledb.connect_async(
            user=dsn.user, password=dsn.password, dsn=_build_dsn(dsn)
        )
        return OracleHandle(connection)
