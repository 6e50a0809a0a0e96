"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest

from row_serve.core.config import ServerConfig
from row_serve.core.pool import ConnectionPool
from row_serve.mcp.protocol import Dispatcher

SQLITE_MEMORY = "sqlite3://:memory:"


class FakeCursor:
    def __init__(self, description: list[tuple[Any, ...]] | None, rows: list[tuple[Any, ...]]):
        self.description = description
        self.rows = rows
        self.closed = False


class FakeHandle:
    """Scriptable Handle for exercising pool and connection behaviour."""

    paramstyle = "qmark"

    def __init__(
        self,
        *,
        ping_error: Exception | None = None,
        delay: float = 0.0,
        rows: list[tuple[Any, ...]] | None = None,
        columns: Sequence[str] = ("value",),
        close_error: Exception | None = None,
    ) -> None:
        self.ping_error = ping_error
        self.delay = delay
        self.rows = rows if rows is not None else [(1,)]
        self.columns = list(columns)
        self.close_error = close_error
        self.closed = False
        self.pings = 0
        self.cursors: list[FakeCursor] = []
        self.active = 0
        self.max_active = 0

    async def _work(self) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.active -= 1

    async def ping(self) -> None:
        self.pings += 1
        await self._work()
        if self.ping_error is not None:
            raise self.ping_error

    async def query(self, sql: str, args: tuple[Any, ...]) -> FakeCursor:
        await self._work()
        cursor = FakeCursor([(name,) for name in self.columns], list(self.rows))
        self.cursors.append(cursor)
        return cursor

    async def fetch_all(self, cursor: FakeCursor) -> list[Sequence[Any]]:
        return cursor.rows

    def column_types(self, cursor: FakeCursor, rows: Sequence[Sequence[Any]]) -> list[str]:
        return ["INTEGER"] * len(self.columns)

    async def release(self, cursor: FakeCursor) -> None:
        cursor.closed = True

    async def execute(self, sql: str, args: tuple[Any, ...]) -> tuple[int, int]:
        await self._work()
        return 1, -1

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def config() -> ServerConfig:
    """Small pool with a short request timeout."""
    return ServerConfig(max_connections=5, request_timeout=2.0, enable_cors=False)


@pytest.fixture
async def pool(config: ServerConfig) -> AsyncIterator[ConnectionPool]:
    pool = ConnectionPool(config)
    yield pool
    await pool.close()


@pytest.fixture
def dispatcher(pool: ConnectionPool, config: ServerConfig) -> Dispatcher:
    return Dispatcher(pool, config)


@pytest.fixture
def fake_open(monkeypatch: pytest.MonkeyPatch):
    """Replace driver resolution in the pool with FakeHandle factories.

    Usage:
        handles = fake_open(lambda dsn: FakeHandle(delay=0.1))
        handles = fake_open(open_delay=0.2)
    """

    def _install(factory=None, *, open_delay: float = 0.0) -> list[FakeHandle]:
        opened: list[FakeHandle] = []
        make = factory or (lambda dsn: FakeHandle())

        async def _open_handle(dsn):
            if open_delay:
                await asyncio.sleep(open_delay)
            handle = make(dsn)
            opened.append(handle)
            return handle

        monkeypatch.setattr("row_serve.core.pool.open_handle", _open_handle)
        return opened

    return _install


@pytest.fixture
def make_handle() -> type[FakeHandle]:
    return FakeHandle


@pytest.fixture
def rpc():
    """Build JSON-RPC request payloads."""

    def _build(method: str, params: Any = None, request_id: Any = 1) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            payload["params"] = params
        return payload

    return _build
