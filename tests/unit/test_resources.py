"""Unit tests for the resource set."""

from __future__ import annotations

import json

import pytest

from row_serve.core.exceptions import ProtocolError
from row_serve.core.pool import ConnectionPool
from row_serve.mcp.errors import ErrorCode
from row_serve.mcp.resources import ResourceSet

DSN = "sqlite3://:memory:"


@pytest.fixture
def resources(pool: ConnectionPool) -> ResourceSet:
    return ResourceSet(pool)


def _contents(result: dict) -> object:
    (entry,) = result["contents"]
    assert entry["mimeType"] == "application/json"
    return json.loads(entry["text"])


class TestRead:
    async def test_uri_required(self, resources: ResourceSet) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            await resources.read({})
        assert exc_info.value.message == "uri is required"

    async def test_unknown_uri(self, resources: ResourceSet) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            await resources.read({"uri": "files://etc/passwd"})
        assert exc_info.value.code == ErrorCode.INVALID_PARAMS
        assert exc_info.value.message == "unknown resource URI: files://etc/passwd"

    async def test_connections_list_empty(self, resources: ResourceSet) -> None:
        assert _contents(await resources.read({"uri": "connections://list"})) == {}

    async def test_connections_list(self, resources: ResourceSet, pool: ConnectionPool) -> None:
        await pool.create_connection("db", DSN)
        listing = _contents(await resources.read({"uri": "connections://list"}))
        assert listing["db"]["driver"] == "sqlite"
        assert listing["db"]["database"] == ":memory:"
        assert set(listing["db"]) == {
            "id",
            "driver",
            "host",
            "database",
            "paramstyle",
            "created",
            "last_used",
        }
        assert listing["db"]["paramstyle"] == "qmark"

    async def test_connections_status(
        self, resources: ResourceSet, pool: ConnectionPool, fake_open
    ) -> None:
        opened = fake_open()
        await pool.create_connection("good", DSN)
        await pool.create_connection("bad", DSN)
        opened[1].ping_error = RuntimeError("server has gone away")

        status = _contents(await resources.read({"uri": "connections://status"}))
        assert status["good"] == {"healthy": True, "error": None}
        assert status["bad"]["healthy"] is False
        assert "server has gone away" in status["bad"]["error"]
        assert "bad" in pool

    async def test_schema_info_requires_connection(self, resources: ResourceSet) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            await resources.read({"uri": "schema://info"})
        assert exc_info.value.code == ErrorCode.INVALID_PARAMS

    async def test_schema_info_unknown_connection(self, resources: ResourceSet) -> None:
        with pytest.raises(ProtocolError) as exc_info:
            await resources.read({"uri": "schema://info/ghost"})
        assert exc_info.value.message == "connection not found: ghost"

    async def test_schema_info_lists_tables(
        self, resources: ResourceSet, pool: ConnectionPool
    ) -> None:
        conn = await pool.create_connection("db", DSN)
        await conn.execute_statement("CREATE TABLE users (id INTEGER)")
        await conn.execute_statement("CREATE TABLE orders (id INTEGER)")

        by_path = _contents(await resources.read({"uri": "schema://info/db"}))
        by_param = _contents(
            await resources.read({"uri": "schema://info", "connection_id": "db"})
        )
        assert by_path == by_param
        assert by_path["columns"] == ["table_name"]
        assert by_path["rows"] == [["orders"], ["users"]]

    async def test_schema_info_falls_back_when_unsupported(
        self, resources: ResourceSet, pool: ConnectionPool, fake_open
    ) -> None:
        opened = fake_open()
        await pool.create_connection("db", DSN)

        async def unsupported(sql, args):
            raise RuntimeError("no catalog")

        opened[0].query = unsupported
        info = _contents(await resources.read({"uri": "schema://info/db"}))
        assert info["columns"] == ["note"]
        assert "not available" in info["rows"][0][0]
