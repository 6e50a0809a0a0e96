"""Connection pool.

ConnectionPool is the single owner of every live Connection. All changes to
its id -> Connection mapping (reserve, insert, delete, clear) happen under
one writer lock. Reads never await, so on the event loop they can never
observe a half-applied change.

Creating a connection performs network I/O. To keep that I/O outside the
writer lock while still guaranteeing uniqueness and the capacity ceiling,
``create_connection`` first *reserves* the id under the lock, then opens and
probes the handle, then inserts under the lock again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from row_serve.core.connection import Connection, ConnectionInfo, deadline
from row_serve.core.dsn import open_handle, parse_dsn
from row_serve.core.exceptions import (
    BackendUnreachableError,
    ConnectionNotFoundError,
    DuplicateConnectionError,
    PoolCapacityError,
    PoolError,
)

if TYPE_CHECKING:
    from row_serve.adapters.protocol import Handle
    from row_serve.core.config import ServerConfig
    from row_serve.core.dsn import DSN

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Named database connections with a fixed capacity ceiling.

    Args:
        config: Server configuration; ``max_connections`` bounds the pool and
            ``request_timeout`` is the default budget for backend I/O.
    """

    def __init__(self, config: ServerConfig) -> None:
        self.config = config
        self.max_connections = config.max_connections
        self._connections: dict[str, Connection] = {}
        self._pending: set[str] = set()
        self._lock = asyncio.Lock()
        self._abandoned: set[asyncio.Task] = set()

    async def create_connection(
        self,
        connection_id: str,
        dsn: str,
        *,
        timeout: float | None = None,
    ) -> Connection:
        """Open a connection and register it under *connection_id*.

        Raises:
            DuplicateConnectionError: The id is taken or being created.
            PoolCapacityError: The pool is at its ceiling.
            InvalidDSNError: The connection string cannot be parsed.
            ConnectionOpenError: The driver failed to open a handle.
            BackendUnreachableError: The initial ping failed.
            OperationTimeoutError: Opening and probing took too long.
        """
        async with self._lock:
            if connection_id in self._connections or connection_id in self._pending:
                raise DuplicateConnectionError(connection_id)
            if len(self._connections) + len(self._pending) >= self.max_connections:
                raise PoolCapacityError(self.max_connections)
            self._pending.add(connection_id)

        try:
            parsed = parse_dsn(dsn)
            handle = await self._open(parsed, self._timeout(timeout))
            conn = Connection(
                connection_id,
                parsed,
                handle,
                default_timeout=self.config.request_timeout,
            )
            try:
                async with self._lock:
                    self._connections[connection_id] = conn
            except BaseException:
                await _close_quietly(handle)
                raise
        finally:
            self._pending.discard(connection_id)

        logger.info("created connection %s (%s)", connection_id, parsed.redacted())
        return conn

    def get_connection(self, connection_id: str) -> Connection:
        """Look up a connection and mark it as used.

        Raises:
            ConnectionNotFoundError: No connection has this id.
        """
        conn = self._connections.get(connection_id)
        if conn is None:
            raise ConnectionNotFoundError(connection_id)
        conn.touch()
        return conn

    async def close_connection(self, connection_id: str) -> None:
        """Remove a connection from the pool and close its handle.

        The entry leaves the mapping before the handle is closed, so a
        concurrent ``get_connection`` can never return a closing connection.

        Raises:
            ConnectionNotFoundError: No connection has this id.
        """
        async with self._lock:
            conn = self._connections.pop(connection_id, None)
        if conn is None:
            raise ConnectionNotFoundError(connection_id)

        try:
            await conn.close()
        except Exception as e:
            logger.warning("error closing connection %s: %s", connection_id, e)
        logger.info("closed connection %s", connection_id)

    def list_connections(self) -> dict[str, ConnectionInfo]:
        """Snapshot of every live connection. Handles are never exposed."""
        return {cid: conn.info() for cid, conn in list(self._connections.items())}

    async def check_connection(self, connection_id: str, *, timeout: float | None = None) -> None:
        """Ping a connection. A failed probe does not evict it.

        Raises:
            ConnectionNotFoundError: No connection has this id.
            BackendUnreachableError: The probe failed.
            OperationTimeoutError: The probe took too long.
        """
        conn = self.get_connection(connection_id)
        await conn.ping(timeout=self._timeout(timeout))

    async def close(self) -> None:
        """Close every connection and empty the pool.

        Best effort: keeps closing after a failure and raises a PoolError
        carrying the last error once every handle has been attempted.
        """
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()

        last_error: Exception | None = None
        for conn in connections:
            try:
                await conn.close()
            except Exception as e:
                logger.warning("error closing connection %s: %s", conn.id, e)
                last_error = e

        if last_error is not None:
            raise PoolError(f"error closing connection pool: {last_error}") from last_error

    def size(self) -> int:
        return len(self._connections)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    async def _open(self, dsn: DSN, timeout: float | None) -> Handle:
        """Open and ping a handle, closing it again if anything fails."""
        async with deadline("connect", timeout):
            opening = asyncio.ensure_future(open_handle(dsn))
            try:
                handle = await asyncio.shield(opening)
            except asyncio.CancelledError:
                # The driver may still finish opening after we give up.
                opening.add_done_callback(self._close_abandoned)
                raise
            try:
                try:
                    await handle.ping()
                except Exception as e:
                    raise BackendUnreachableError(str(e)) from e
            except BaseException:
                await _close_quietly(handle)
                raise
        return handle

    def _close_abandoned(self, opening: asyncio.Future) -> None:
        if opening.cancelled() or opening.exception() is not None:
            return
        logger.debug("closing handle that finished opening after its deadline")
        task = asyncio.ensure_future(_close_quietly(opening.result()))
        self._abandoned.add(task)
        task.add_done_callback(self._abandoned.discard)

    def _timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self.config.request_timeout


async def _close_quietly(handle: Handle) -> None:
    try:
        await handle.close()
    except Exception as e:
        logger.debug("error closing abandoned handle: %s", e)
