"""Query execution engine.

QueryEngine classifies a statement, checks it against the permission
policy and runs it through the adapter on one of two paths:

* write path: BEGIN, execute, COMMIT (ROLLBACK on failure);
* read path: BEGIN, optional read-only session, execute, always ROLLBACK.

Every outcome, including denials and backend failures, is returned as a
ResponseEnvelope. Nothing below this boundary is re-raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from db_bridge.adapters.factory import create_adapter
from db_bridge.core.classifier import QueryClassification, classify
from db_bridge.core.connection import AsyncConnectionManager
from db_bridge.core.enums import StatementKind
from db_bridge.core.exceptions import AdapterError, ConfigurationError, QueryTimeoutError
from db_bridge.core.permissions import PermissionPolicy, evaluate
from db_bridge.core.response import (
    ResponseEnvelope,
    build_read_response,
    build_write_response,
    error_envelope,
)
from db_bridge.core.transaction import TrackedConnection

logger = logging.getLogger(__name__)

READ_ONLY_MODE_MESSAGE = (
    "Error: Write operations are disabled by DB_READ_ONLY_MODE. "
    "Ask the administrator to update the configuration."
)


class QueryEngine:
    """Asynchronous, reentrant statement executor."""

    def __init__(
        self,
        connection_manager: AsyncConnectionManager,
        policy: PermissionPolicy,
        dialect: str | None = None,
    ) -> None:
        self._connection_manager = connection_manager
        self._policy = policy
        self._dialect = dialect

    @classmethod
    def from_settings(cls, settings: Any) -> QueryEngine:
        """Create a QueryEngine from a Settings instance.

        Raises:
            ConfigurationError: On an unknown backend or invalid permission values.
        """
        backend = settings.backend
        adapter = create_adapter(backend)
        policy = settings.permission_policy()
        if policy.multi_db_mode and not policy.multi_db_write_allowed:
            logger.warning("Multi-DB mode detected - write operations are disabled for safety")
        connection_manager = AsyncConnectionManager(settings.connection_config(), adapter)
        return cls(connection_manager, policy, dialect=backend.dialect)

    @property
    def adapter(self) -> Any:
        return self._connection_manager.adapter

    @property
    def policy(self) -> PermissionPolicy:
        return self._policy

    async def initialize_pool(self) -> None:
        """Create the pool eagerly at startup.

        Raises:
            ConfigurationError: If the backend cannot be reached.
        """
        try:
            await self._connection_manager.initialize_pool()
        except AdapterError as e:
            raise ConfigurationError(str(e)) from e

    async def close(self) -> None:
        await self._connection_manager.close_pool()

    async def execute(self, sql: str, *, timeout: float | None = None) -> ResponseEnvelope:
        """Run *sql* under the permission policy.

        Args:
            sql: Raw SQL text.
            timeout: Seconds to wait for the backend call. On expiry the
                connection is discarded rather than returned to the pool.
        """
        classification = self._classify(sql)

        if self._policy.read_only_mode and classification.is_write:
            logger.error("Write operations are blocked by DB_READ_ONLY_MODE")
            return error_envelope(READ_ONLY_MODE_MESSAGE)

        decision = evaluate(classification, self._policy)
        if not decision.allowed:
            logger.error(decision.message)
            return error_envelope(decision.message)

        if classification.is_write:
            return await self._execute_write(sql, classification, timeout)
        return await self._execute_read(sql, timeout)

    def _classify(self, sql: str) -> QueryClassification:
        try:
            return classify(sql, self._dialect)
        except Exception:
            # The read path still rolls back whatever the statement does.
            logger.exception("Unable to classify statement, treating it as a read")
            return QueryClassification(frozenset({StatementKind.OTHER}))

    async def _execute_write(
        self, sql: str, classification: QueryClassification, timeout: float | None
    ) -> ResponseEnvelope:
        adapter = self.adapter
        try:
            async with self._connection_manager.get_connection() as connection:
                logger.debug("Write connection acquired")
                await self._begin(connection)
                try:
                    raw, elapsed_ms = await self._run(connection, sql, timeout)
                    result = adapter.normalize_result(raw)
                    await adapter.commit(connection)
                except Exception as e:
                    logger.error("Error executing write query: %s", e)
                    await self._safe_rollback(connection)
                    return error_envelope(f"Error executing write operation: {e}")
                return build_write_response(result, elapsed_ms, classification)
        except Exception as e:
            logger.error("Error in write operation transaction: %s", e)
            return error_envelope(f"Database connection error: {e}")

    async def _execute_read(self, sql: str, timeout: float | None) -> ResponseEnvelope:
        adapter = self.adapter
        use_read_only = (
            adapter.supports_read_only_mode() and not self._policy.disable_read_only_transactions
        )
        if not use_read_only:
            logger.info("Read-only transactions disabled or not supported by adapter")

        try:
            async with self._connection_manager.get_connection() as connection:
                logger.debug("Read-only connection acquired")
                read_only_set = False
                try:
                    await self._begin(connection)
                    if use_read_only:
                        read_only_set = True
                        await adapter.set_read_only(connection)
                    raw, elapsed_ms = await self._run(connection, sql, timeout)
                    result = adapter.normalize_result(raw)
                    # Never commit on the read path.
                    await adapter.rollback(connection)
                    return build_read_response(result, elapsed_ms)
                except Exception as e:
                    logger.error("Error executing read-only query: %s", e)
                    await self._safe_rollback(connection)
                    return error_envelope(f"Error executing query: {e}")
                finally:
                    if read_only_set:
                        await self._safe_unset_read_only(connection)
        except Exception as e:
            logger.error("Error in read-only query transaction: %s", e)
            return error_envelope(f"Database connection error: {e}")

    async def _begin(self, connection: TrackedConnection) -> None:
        try:
            await self.adapter.begin_transaction(connection)
        except Exception:
            connection.faulted = True
            raise

    async def _run(
        self, connection: TrackedConnection, sql: str, timeout: float | None
    ) -> tuple[Any, float]:
        """Execute on the backend; the elapsed time covers only this call."""
        start = time.perf_counter()
        try:
            if timeout is None:
                raw = await self.adapter.execute(connection, sql)
            else:
                raw = await asyncio.wait_for(self.adapter.execute(connection, sql), timeout)
        except asyncio.TimeoutError:
            connection.faulted = True
            raise QueryTimeoutError(timeout) from None
        except asyncio.CancelledError:
            connection.faulted = True
            raise
        return raw, (time.perf_counter() - start) * 1000

    async def _safe_rollback(self, connection: TrackedConnection) -> None:
        if connection.faulted:
            # Discarding the connection ends its transaction.
            return
        try:
            await self.adapter.rollback(connection)
        except Exception as e:
            logger.error("Error during rollback cleanup: %s", e)

    async def _safe_unset_read_only(self, connection: TrackedConnection) -> None:
        if connection.faulted:
            return
        try:
            await self.adapter.unset_read_only(connection)
        except Exception as e:
            logger.error("Error resetting read-write mode: %s", e)
            # The session may still be read-only; keep it out of the pool.
            connection.faulted = True
