"""MySQL adapter using aiomysql."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from row_serve.core.dsn import DSN, driver_options

_CONNECT_OPTIONS = frozenset({"charset", "unix_socket", "init_command", "sql_mode"})


@lru_cache(maxsize=1)
def _field_type_names() -> dict[int, str]:
    """Map MySQL field type codes to their names (e.g. 3 -> 'LONG')."""
    from pymysql.constants import FIELD_TYPE

    return {
        value: name
        for name, value in vars(FIELD_TYPE).items()
        if name.isupper() and isinstance(value, int)
    }


class MysqlHandle:
    """An open aiomysql connection in autocommit mode."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    @property
    def paramstyle(self) -> str:
        return "format"

    async def ping(self) -> None:
        """Ping the server without reconnecting."""
        await self._connection.ping(reconnect=False)

    async def query(self, sql: str, args: tuple[Any, ...]) -> Any:
        """Execute SQL and return a cursor."""
        cursor = await self._connection.cursor()
        await cursor.execute(sql, args or None)
        return cursor

    async def fetch_all(self, cursor: Any) -> list[Sequence[Any]]:
        """Fetch all rows as tuples."""
        if cursor.description is None:
            return []
        return list(await cursor.fetchall())

    def column_types(self, cursor: Any, rows: Sequence[Sequence[Any]]) -> list[str]:
        """Resolve column type codes to MySQL type names."""
        names = _field_type_names()
        return [names.get(desc[1], str(desc[1])) for desc in cursor.description or ()]

    async def release(self, cursor: Any) -> None:
        """Close the cursor."""
        await cursor.close()

    async def execute(self, sql: str, args: tuple[Any, ...]) -> tuple[int, int]:
        """Execute a statement and report rowcount and lastrowid."""
        cursor = await self._connection.cursor()
        try:
            await cursor.execute(sql, args or None)
            rows_affected = cursor.rowcount
            last_insert_id = cursor.lastrowid
        finally:
            await cursor.close()
        return (
            int(rows_affected) if rows_affected is not None else -1,
            int(last_insert_id) if last_insert_id is not None else -1,
        )

    async def close(self) -> None:
        """Close the connection."""
        self._connection.close()


class MysqlDriver:
    """Opens autocommit MySQL/MariaDB connections."""

    async def open(self, dsn: DSN) -> MysqlHandle:
        """Connect with the DSN's host, credentials and database."""
        import aiomysql

        connection = await aiomysql.connect(
            host=dsn.host,
            port=dsn.port or 3306,
            user=dsn.user,
            password=dsn.password or "",
            db=dsn.database or None,
            autocommit=True,
            **driver_options(dsn, _CONNECT_OPTIONS),
        )
        return MysqlHandle(connection)
