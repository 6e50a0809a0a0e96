"""PostgreSQL adapter using psycopg (v3+) async support."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from row_serve.core.dsn import DSN, driver_options

# libpq parameters that may be passed through the DSN query string
_CONNINFO_OPTIONS = frozenset(
    {
        "sslmode",
        "sslrootcert",
        "sslcert",
        "sslkey",
        "connect_timeout",
        "application_name",
        "options",
        "target_session_attrs",
    }
)


def _build_conninfo(dsn: DSN) -> dict[str, Any]:
    """Build libpq connection keywords from DSN fields."""
    params: dict[str, Any] = {"host": dsn.host}
    if dsn.port is not None:
        params["port"] = dsn.port
    if dsn.user is not None:
        params["user"] = dsn.user
    if dsn.password is not None:
        params["password"] = dsn.password
    if dsn.database:
        params["dbname"] = dsn.database
    params.update(driver_options(dsn, _CONNINFO_OPTIONS))
    return params


class PostgresqlHandle:
    def __init__(self, connection: Any) -> None:
        self._connection = connection

    @property
    def paramstyle(self) -> str:
        return "format"

    async def ping(self) -> None:
        await self._connection.execute("SELECT 1")

    async def query(self, sql: str, args: tuple[Any, ...]) -> Any:
        cursor = self._connection.cursor()
        await cursor.execute(sql, args or None)
        return cursor

    async def fetch_all(self, cursor: Any) -> list[Sequence[Any]]:
        if cursor.description is None:
            return []
        return list(await cursor.fetchall())

    def column_types(self, cursor: Any, rows: Sequence[Sequence[Any]]) -> list[str]:
        return [
            getattr(column, "type_display", None) or str(column.type_code).upper()
            for column in cursor.description or ()
        ]

    async def release(self, cursor: Any) -> None:
        await cursor.close()

    async def execute(self, sql: str, args: tuple[Any, ...]) -> tuple[int, int]:
        # PostgreSQL has no last-insert-id; callers use RETURNING instead.
        async with self._connection.cursor() as cursor:
            await cursor.execute(sql, args or None)
            return int(cursor.rowcount), -1

    async def close(self) -> None:
        await self._connection.close()


class PostgresqlDriver:
    """Opens autocommit PostgreSQL connections."""

    async def open(self, dsn: DSN) -> PostgresqlHandle:
        import psycopg

        connection = await psycopg.AsyncConnection.connect(
            autocommit=True, **_build_conninfo(dsn)
        )
        return PostgresqlHandle(connection)
