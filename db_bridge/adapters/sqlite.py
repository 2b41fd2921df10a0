"""SQLite adapter - a single shared aiosqlite handle.

SQLite has no connection pool. The "pool" is one connection guarded by a
lock, so concurrent callers are served one at a time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from db_bridge.adapters.protocol import NormalizedResult, WriteAck, normalize_shape
from db_bridge.core.connection import ConnectionConfig
from db_bridge.core.enums import DatabaseBackend
from db_bridge.core.exceptions import ConnectionError, PoolError  # noqa: A004
from db_bridge.core.transaction import TrackedConnection

logger = logging.getLogger(__name__)


class SqliteHandle:
    """Stands in for a pool: one tracked connection plus its lock."""

    def __init__(self, connection: TrackedConnection, path: str) -> None:
        self.connection = connection
        self.path = path
        self.lock = asyncio.Lock()


class SqliteAsyncAdapter:
    """Asynchronous SQLite adapter using aiosqlite."""

    @property
    def backend(self) -> DatabaseBackend:
        return DatabaseBackend.SQLITE

    async def create_pool(self, config: ConnectionConfig) -> SqliteHandle:
        """Open the database file (``:memory:`` when none is configured)."""
        import aiosqlite

        path = config.database or ":memory:"
        try:
            raw = await aiosqlite.connect(path, isolation_level=None)
        except Exception as e:
            logger.error("Error creating SQLite database: %s", e)
            raise ConnectionError(f"Unable to open SQLite database '{path}': {e}") from e

        logger.info("SQLite database opened successfully: %s", path)
        return SqliteHandle(TrackedConnection(raw), path)

    async def acquire_connection(self, pool: SqliteHandle) -> TrackedConnection:
        await pool.lock.acquire()
        pool.connection.reset()
        return pool.connection

    async def release_connection(self, connection: TrackedConnection, pool: SqliteHandle) -> None:
        if not pool.lock.locked():
            raise PoolError("SQLite handle released without being acquired")
        pool.lock.release()

    async def discard_connection(self, connection: TrackedConnection, pool: SqliteHandle) -> None:
        """The only handle cannot be replaced; roll back and hand it on."""
        logger.warning("SQLite handle cannot be discarded, rolling back instead")
        try:
            if connection.raw.in_transaction:
                await connection.raw.rollback()
        finally:
            connection.mark_closed()
            await self.release_connection(connection, pool)

    async def close_pool(self, pool: SqliteHandle) -> None:
        await pool.connection.raw.close()

    async def begin_transaction(self, connection: TrackedConnection) -> None:
        if connection.in_transaction:
            return
        await connection.raw.execute("BEGIN")
        connection.mark_begun()

    async def commit(self, connection: TrackedConnection) -> None:
        connection.check_can_commit()
        if connection.raw.in_transaction:
            await connection.raw.execute("COMMIT")
        connection.mark_closed()

    async def rollback(self, connection: TrackedConnection) -> None:
        if not connection.in_transaction:
            return
        try:
            # Some errors make SQLite roll back on its own.
            if connection.raw.in_transaction:
                await connection.raw.execute("ROLLBACK")
        finally:
            connection.mark_closed()

    async def execute(self, connection: TrackedConnection, sql: str) -> Any:
        """Execute SQL; returns a list of dict rows or a WriteAck."""
        previous = connection.mark_executing()
        try:
            cursor = await connection.raw.execute(sql)
            try:
                if cursor.description is not None:
                    columns = [desc[0] for desc in cursor.description]
                    rows = await cursor.fetchall()
                    return [dict(zip(columns, row, strict=True)) for row in rows]
                affected = max(cursor.rowcount, 0)
                return WriteAck(
                    affected_rows=affected,
                    insert_id=cursor.lastrowid or 0,
                    changed_rows=affected,
                )
            finally:
                await cursor.close()
        finally:
            connection.mark_executed(previous)

    async def set_read_only(self, connection: TrackedConnection) -> None:
        logger.warning("SQLite does not support SET TRANSACTION READ ONLY at runtime")

    async def unset_read_only(self, connection: TrackedConnection) -> None:
        return None

    def normalize_result(self, raw: Any) -> NormalizedResult:
        return normalize_shape(raw)

    def supports_read_only_mode(self) -> bool:
        return False
