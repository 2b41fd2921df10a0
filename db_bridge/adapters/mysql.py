"""MySQL adapter - pooled async connections using aiomysql."""

from __future__ import annotations

import logging
import ssl
from typing import Any

from db_bridge.adapters.protocol import NormalizedResult, WriteAck, normalize_shape
from db_bridge.core.connection import ConnectionConfig, SSLConfig
from db_bridge.core.enums import DatabaseBackend
from db_bridge.core.exceptions import ConnectionError  # noqa: A004
from db_bridge.core.transaction import TrackedConnection

logger = logging.getLogger(__name__)


def _build_ssl_context(ssl_config: SSLConfig) -> ssl.SSLContext:
    """Build an SSLContext; verification stays on unless explicitly disabled."""
    context = ssl.create_default_context(cafile=ssl_config.ca)
    if ssl_config.cert is not None:
        context.load_cert_chain(ssl_config.cert, ssl_config.key)
    if not ssl_config.reject_unauthorized:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class MysqlAsyncAdapter:
    """Asynchronous MySQL adapter using an aiomysql pool."""

    @property
    def backend(self) -> DatabaseBackend:
        return DatabaseBackend.MYSQL

    async def create_pool(self, config: ConnectionConfig) -> Any:
        """Create an aiomysql pool in autocommit mode.

        Transactions are opened explicitly with BEGIN, so autocommit only
        affects statements issued outside of one.
        """
        import aiomysql

        kwargs: dict[str, Any] = {
            "user": config.user or "root",
            "password": config.password or "",
            "db": config.database,
            "minsize": 1,
            "maxsize": config.pool_size,
            "autocommit": True,
        }
        if config.socket_path:
            kwargs["unix_socket"] = config.socket_path
        else:
            kwargs["host"] = config.host or "127.0.0.1"
            kwargs["port"] = config.port or 3306

        try:
            if config.ssl is not None:
                kwargs["ssl"] = _build_ssl_context(config.ssl)
            pool = await aiomysql.create_pool(**kwargs)
        except Exception as e:
            logger.error("Error creating MySQL pool: %s", e)
            raise ConnectionError(f"Unable to create MySQL pool: {e}") from e

        logger.info("MySQL pool created successfully")
        return pool

    async def acquire_connection(self, pool: Any) -> TrackedConnection:
        try:
            raw = await pool.acquire()
        except Exception as e:
            raise ConnectionError(f"Unable to acquire MySQL connection: {e}") from e
        return TrackedConnection(raw)

    async def release_connection(self, connection: TrackedConnection, pool: Any) -> None:
        await pool.release(connection.raw)

    async def discard_connection(self, connection: TrackedConnection, pool: Any) -> None:
        # Closing aborts any open transaction on the server side.
        connection.raw.close()
        connection.mark_closed()
        await pool.release(connection.raw)

    async def close_pool(self, pool: Any) -> None:
        pool.close()
        await pool.wait_closed()

    async def begin_transaction(self, connection: TrackedConnection) -> None:
        if connection.in_transaction:
            return
        await connection.raw.begin()
        connection.mark_begun()

    async def commit(self, connection: TrackedConnection) -> None:
        connection.check_can_commit()
        await connection.raw.commit()
        connection.mark_closed()

    async def rollback(self, connection: TrackedConnection) -> None:
        if not connection.in_transaction:
            return
        try:
            await connection.raw.rollback()
        except Exception:
            connection.faulted = True
            raise
        finally:
            connection.mark_closed()

    async def execute(self, connection: TrackedConnection, sql: str) -> Any:
        """Execute SQL; returns a list of dict rows or a WriteAck."""
        import aiomysql

        previous = connection.mark_executing()
        try:
            async with connection.raw.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(sql)
                if cursor.description is not None:
                    return list(await cursor.fetchall())
                affected = max(cursor.rowcount, 0)
                return WriteAck(
                    affected_rows=affected,
                    insert_id=cursor.lastrowid or 0,
                    changed_rows=affected,
                )
        finally:
            connection.mark_executed(previous)

    async def set_read_only(self, connection: TrackedConnection) -> None:
        """Switch the session to read-only.

        The session characteristic only applies to the next transaction, so
        an open (still empty) transaction is restarted as READ ONLY.
        """
        await self._run(connection, "SET SESSION TRANSACTION READ ONLY")
        if connection.in_transaction:
            await self._run(connection, "START TRANSACTION READ ONLY")
        connection.mark_read_only()

    async def unset_read_only(self, connection: TrackedConnection) -> None:
        await self._run(connection, "SET SESSION TRANSACTION READ WRITE")
        connection.mark_read_write()

    def normalize_result(self, raw: Any) -> NormalizedResult:
        return normalize_shape(raw)

    def supports_read_only_mode(self) -> bool:
        return True

    async def _run(self, connection: TrackedConnection, sql: str) -> None:
        async with connection.raw.cursor() as cursor:
            await cursor.execute(sql)
