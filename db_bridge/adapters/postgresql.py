"""PostgreSQL adapter - async pooled connections using psycopg (v3+) and psycopg_pool."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from db_bridge.adapters.protocol import NormalizedResult, normalize_shape
from db_bridge.core.connection import ConnectionConfig
from db_bridge.core.enums import DatabaseBackend
from db_bridge.core.exceptions import ConnectionError  # noqa: A004
from db_bridge.core.transaction import TrackedConnection

logger = logging.getLogger(__name__)

_OPEN_TIMEOUT = 10.0


@dataclass
class PgResult:
    """Raw PostgreSQL result: rows (possibly empty) plus the command row count."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


def _build_conninfo(config: ConnectionConfig) -> str:
    """Build a libpq connection string from config fields."""
    from psycopg.conninfo import make_conninfo

    params: dict[str, Any] = {
        "host": config.host or "127.0.0.1",
        "port": config.port or 5432,
        "user": config.user or "postgres",
        "password": config.password or "",
    }
    if config.database:
        params["dbname"] = config.database
    if config.ssl is not None:
        params["sslmode"] = "verify-full" if config.ssl.reject_unauthorized else "require"
        # libpq verifies against sslrootcert whenever it is given.
        if config.ssl.ca and config.ssl.reject_unauthorized:
            params["sslrootcert"] = config.ssl.ca
        if config.ssl.cert:
            params["sslcert"] = config.ssl.cert
        if config.ssl.key:
            params["sslkey"] = config.ssl.key
    return make_conninfo("", **params)


class PostgresqlAsyncAdapter:
    """Asynchronous PostgreSQL adapter using psycopg_pool.AsyncConnectionPool."""

    @property
    def backend(self) -> DatabaseBackend:
        return DatabaseBackend.POSTGRESQL

    async def create_pool(self, config: ConnectionConfig) -> Any:
        from psycopg.rows import dict_row
        from psycopg_pool import AsyncConnectionPool

        pool = AsyncConnectionPool(
            _build_conninfo(config),
            min_size=1,
            max_size=config.pool_size,
            kwargs={"autocommit": True, "row_factory": dict_row},
            open=False,
        )
        try:
            await pool.open(wait=True, timeout=_OPEN_TIMEOUT)
        except Exception as e:
            logger.error("Error creating PostgreSQL pool: %s", e)
            await pool.close()
            raise ConnectionError(f"Unable to create PostgreSQL pool: {e}") from e

        logger.info("PostgreSQL pool created successfully")
        return pool

    async def acquire_connection(self, pool: Any) -> TrackedConnection:
        try:
            raw = await pool.getconn()
        except Exception as e:
            raise ConnectionError(f"Unable to acquire PostgreSQL connection: {e}") from e
        return TrackedConnection(raw)

    async def release_connection(self, connection: TrackedConnection, pool: Any) -> None:
        await pool.putconn(connection.raw)

    async def discard_connection(self, connection: TrackedConnection, pool: Any) -> None:
        # The pool replaces closed connections when they are returned.
        await connection.raw.close()
        connection.mark_closed()
        await pool.putconn(connection.raw)

    async def close_pool(self, pool: Any) -> None:
        await pool.close()

    async def begin_transaction(self, connection: TrackedConnection) -> None:
        if connection.in_transaction:
            return
        await connection.raw.execute("BEGIN")
        connection.mark_begun()

    async def commit(self, connection: TrackedConnection) -> None:
        connection.check_can_commit()
        await connection.raw.execute("COMMIT")
        connection.mark_closed()

    async def rollback(self, connection: TrackedConnection) -> None:
        if not connection.in_transaction:
            return
        try:
            await connection.raw.execute("ROLLBACK")
        except Exception:
            connection.faulted = True
            raise
        finally:
            connection.mark_closed()

    async def execute(self, connection: TrackedConnection, sql: str) -> PgResult:
        previous = connection.mark_executing()
        try:
            cursor = await connection.raw.execute(sql)
            rows = await cursor.fetchall() if cursor.description is not None else []
            return PgResult(rows=list(rows), row_count=max(cursor.rowcount, 0))
        finally:
            connection.mark_executed(previous)

    async def set_read_only(self, connection: TrackedConnection) -> None:
        await connection.raw.execute("SET TRANSACTION READ ONLY")
        connection.mark_read_only()

    async def unset_read_only(self, connection: TrackedConnection) -> None:
        """SET TRANSACTION is transaction-scoped and ended by the rollback."""
        connection.mark_read_write()

    def normalize_result(self, raw: Any) -> NormalizedResult:
        if isinstance(raw, PgResult):
            return NormalizedResult(rows=raw.rows, affected_rows=raw.row_count)
        return normalize_shape(raw)

    def supports_read_only_mode(self) -> bool:
        return True
