"""Connection configuration and management.

ConnectionConfig and SSLConfig are frozen Pydantic models built once at
startup. AsyncConnectionManager owns the lazily created pool and hands out
connections through the adapter protocol.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any

from pydantic import BaseModel, ConfigDict

from db_bridge.core.exceptions import PoolError

logger = logging.getLogger(__name__)


class SSLConfig(BaseModel):
    """TLS material for the database connection."""

    model_config = ConfigDict(frozen=True)

    ca: str | None = None
    cert: str | None = None
    key: str | None = None
    reject_unauthorized: bool = True


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    model_config = ConfigDict(frozen=True)

    host: str | None = None
    port: int | None = None
    socket_path: str | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    pool_size: int = 10
    ssl: SSLConfig | None = None


class AsyncConnectionManager:
    """Lazy, once-only pool creation plus connection checkout."""

    def __init__(self, config: ConnectionConfig, adapter: Any) -> None:
        self.config = config
        self._adapter = adapter
        self._pool_task: asyncio.Future[Any] | None = None
        self._closed = False

    @property
    def adapter(self) -> Any:
        return self._adapter

    async def initialize_pool(self) -> Any:
        """Return the pool, creating it on first use.

        Concurrent first callers share one in-flight creation task. A failed
        creation is forgotten so a later call can retry.
        """
        if self._closed:
            raise PoolError("Connection pool has been closed")
        if self._pool_task is None:
            self._pool_task = asyncio.ensure_future(self._adapter.create_pool(self.config))
        task = self._pool_task
        try:
            return await asyncio.shield(task)
        except Exception:
            if self._pool_task is task and task.done():
                self._pool_task = None
            raise

    @asynccontextmanager
    async def get_connection(self):  # type: ignore[no-untyped-def]
        """Check out a connection; release it, or discard it when faulted."""
        pool = await self.initialize_pool()
        connection = await self._adapter.acquire_connection(pool)
        try:
            yield connection
        except asyncio.CancelledError:
            # Cancelled mid-call: the transaction state is unknown.
            connection.faulted = True
            raise
        finally:
            try:
                if connection.faulted:
                    logger.warning("Discarding faulted connection")
                    await self._adapter.discard_connection(connection, pool)
                else:
                    await self._adapter.release_connection(connection, pool)
            except Exception:
                logger.exception("Error releasing connection")

    async def close_pool(self) -> None:
        """Close the pool if one was created."""
        self._closed = True
        task, self._pool_task = self._pool_task, None
        if task is None:
            return
        try:
            pool = await task
        except Exception as e:
            logger.debug("Pool was never created, nothing to close: %s", e)
            return
        await self._adapter.close_pool(pool)
