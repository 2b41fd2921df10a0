"""Integration test for the full QueryEngine workflow.

Covers: classification, permission checks, the read and write transaction
paths and response envelopes against a real SQLite database file.
"""

from __future__ import annotations

import asyncio
import json

import pytest

from db_bridge.adapters.sqlite import SqliteAsyncAdapter
from db_bridge.core.connection import AsyncConnectionManager, ConnectionConfig
from db_bridge.core.engine import QueryEngine
from db_bridge.core.enums import WriteOperation
from db_bridge.core.permissions import PermissionPolicy

pytestmark = pytest.mark.integration


# --- Fixtures ---


def _engine(config: ConnectionConfig, policy: PermissionPolicy) -> QueryEngine:
    manager = AsyncConnectionManager(config, SqliteAsyncAdapter())
    return QueryEngine(manager, policy, dialect="sqlite")


@pytest.fixture
async def writer(sqlite_config: ConnectionConfig, permissive_policy: PermissionPolicy):
    engine = _engine(sqlite_config, permissive_policy)
    created = await engine.execute(
        "CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL)"
    )
    assert created.is_error is False
    yield engine
    await engine.close()


@pytest.fixture
async def reader(sqlite_config: ConnectionConfig, writer: QueryEngine):
    engine = _engine(sqlite_config, PermissionPolicy())
    yield engine
    await engine.close()


async def _count(engine: QueryEngine) -> int:
    envelope = await engine.execute("SELECT COUNT(*) AS cnt FROM users")
    return json.loads(envelope.text)[0]["cnt"]


# --- Tests ---


class TestReads:
    async def test_select_literal(self, reader: QueryEngine) -> None:
        envelope = await reader.execute("SELECT 1")

        assert envelope.is_error is False
        assert json.loads(envelope.text) == [{"1": 1}]
        assert envelope.content[1].text.startswith("Query execution time:")

    async def test_wire_shape(self, reader: QueryEngine) -> None:
        wire = (await reader.execute("SELECT 'x' AS v")).to_wire()

        assert wire["isError"] is False
        assert wire["content"][0] == {"type": "text", "text": '[\n  {\n    "v": "x"\n  }\n]'}

    async def test_backend_error_is_envelope(self, reader: QueryEngine) -> None:
        envelope = await reader.execute("SELECT * FROM missing_table")

        assert envelope.is_error is True
        assert envelope.text.startswith("Error executing query: ")
        assert "missing_table" in envelope.text

        # The shared handle is usable afterwards.
        assert (await reader.execute("SELECT 2 AS two")).is_error is False


class TestWrites:
    async def test_insert_commits(self, writer: QueryEngine) -> None:
        envelope = await writer.execute("INSERT INTO users (name) VALUES ('alice')")

        assert envelope.is_error is False
        assert envelope.text == (
            "Insert successful on schema 'default'. Affected rows: 1, Last insert ID: 1"
        )
        assert await _count(writer) == 1

    async def test_update_and_delete(self, writer: QueryEngine) -> None:
        await writer.execute("INSERT INTO users (name) VALUES ('alice')")
        await writer.execute("INSERT INTO users (name) VALUES ('bob')")

        updated = await writer.execute("UPDATE users SET name = 'carol' WHERE name = 'bob'")
        deleted = await writer.execute("DELETE FROM users")

        assert updated.text == (
            "Update successful on schema 'default'. Affected rows: 1, Changed rows: 1"
        )
        assert deleted.text == "Delete successful on schema 'default'. Affected rows: 2"
        assert await _count(writer) == 0

    async def test_failed_write_rolls_back(self, writer: QueryEngine) -> None:
        envelope = await writer.execute("INSERT INTO users (name) VALUES (NULL)")

        assert envelope.is_error is True
        assert envelope.text.startswith("Error executing write operation: ")
        assert await _count(writer) == 0

    async def test_concurrent_writes_are_serialized(self, writer: QueryEngine) -> None:
        envelopes = await asyncio.gather(
            *(writer.execute(f"INSERT INTO users (name) VALUES ('u{i}')") for i in range(5))
        )

        assert all(not e.is_error for e in envelopes)
        assert await _count(writer) == 5

    async def test_cancelled_write_rolls_back_shared_handle(self, writer: QueryEngine) -> None:
        task = asyncio.ensure_future(
            writer.execute(
                "INSERT INTO users (name) "
                "WITH RECURSIVE seq(n) AS (SELECT 1 UNION ALL SELECT n + 1 FROM seq "
                "WHERE n < 2000000) SELECT 'bulk' FROM seq"
            )
        )
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        envelope = await writer.execute("SELECT 1")

        assert envelope.is_error is False
        assert await _count(writer) == 0


class TestPermissions:
    async def test_denied_write_leaves_data_untouched(
        self, reader: QueryEngine, writer: QueryEngine
    ) -> None:
        envelope = await reader.execute("INSERT INTO users (name) VALUES ('mallory')")

        assert envelope.is_error is True
        assert "ALLOW_INSERT_OPERATION" in envelope.text
        assert await _count(writer) == 0

    async def test_ddl_requires_its_own_flag(self, sqlite_config: ConnectionConfig) -> None:
        engine = _engine(
            sqlite_config, PermissionPolicy(global_permissions={WriteOperation.INSERT: True})
        )
        try:
            envelope = await engine.execute("DROP TABLE IF EXISTS users")
        finally:
            await engine.close()

        assert envelope.is_error is True
        assert "DDL operations are not allowed" in envelope.text
