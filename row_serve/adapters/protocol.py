"""Database driver protocols.

Every adapter module MUST implement these protocols. The connection pool
only ever talks to a backend through a ``Handle`` obtained from a
``Driver``; it never imports a driver library itself.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from row_serve.core.dsn import DSN


@runtime_checkable
class Handle(Protocol):
    """An open, backend-specific database connection."""

    @property
    def paramstyle(self) -> str:
        """Positional placeholder style: 'qmark' (?), 'format' (%s) or 'numeric' (:1)."""
        ...

    async def ping(self) -> None:
        """Issue a liveness probe, raising on failure."""
        ...

    async def query(self, sql: str, args: tuple[Any, ...]) -> Any:
        """Execute SQL and return a cursor-like object."""
        ...

    async def fetch_all(self, cursor: Any) -> list[Sequence[Any]]:
        """Read every remaining row from *cursor*."""
        ...

    def column_types(self, cursor: Any, rows: Sequence[Sequence[Any]]) -> list[str]:
        """Return the database type name of each result column."""
        ...

    async def release(self, cursor: Any) -> None:
        """Close a cursor returned by ``query``."""
        ...

    async def execute(self, sql: str, args: tuple[Any, ...]) -> tuple[int, int]:
        """Execute a statement and return ``(rows_affected, last_insert_id)``.

        Either value is -1 when the backend cannot report it.
        """
        ...

    async def close(self) -> None:
        """Close the handle and release its resources."""
        ...


@runtime_checkable
class Driver(Protocol):
    """Opens handles for one database backend."""

    async def open(self, dsn: DSN) -> Handle:
        """Open a new handle for *dsn*."""
        ...
