"""Database adapter protocol.

Every adapter module MUST implement this protocol. The engine only talks to
backends through it, so the three variants (pooled multi-connection, pooled
client, single shared handle) are interchangeable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from db_bridge.core.connection import ConnectionConfig
from db_bridge.core.enums import DatabaseBackend
from db_bridge.core.transaction import TrackedConnection


@dataclass
class NormalizedResult:
    """The common result shape all backends are coerced into."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    affected_rows: int | None = None
    insert_id: int | None = None
    changed_rows: int | None = None


@dataclass
class WriteAck:
    """Write acknowledgement returned by statements without a result set."""

    affected_rows: int = 0
    insert_id: int = 0
    changed_rows: int = 0


def normalize_shape(raw: Any) -> NormalizedResult:
    """Dispatch on the shape of a raw result.

    A write acknowledgement becomes counters with no rows, a row sequence
    becomes rows, and anything else is an empty result.
    """
    if raw is None:
        return NormalizedResult()
    if isinstance(raw, WriteAck):
        return NormalizedResult(
            rows=[],
            affected_rows=raw.affected_rows,
            insert_id=raw.insert_id,
            changed_rows=raw.changed_rows,
        )
    if isinstance(raw, list):
        return NormalizedResult(rows=raw)
    return NormalizedResult()


@runtime_checkable
class AsyncAdapter(Protocol):
    """Asynchronous database adapter protocol."""

    @property
    def backend(self) -> DatabaseBackend:
        """The backend this adapter drives."""
        ...

    async def create_pool(self, config: ConnectionConfig) -> Any:
        """Create a connection pool. Raises ConnectionError if unreachable."""
        ...

    async def acquire_connection(self, pool: Any) -> TrackedConnection:
        """Check a connection out of the pool."""
        ...

    async def release_connection(self, connection: TrackedConnection, pool: Any) -> None:
        """Return a connection to the pool."""
        ...

    async def discard_connection(self, connection: TrackedConnection, pool: Any) -> None:
        """Close a faulted connection instead of returning it to the pool."""
        ...

    async def close_pool(self, pool: Any) -> None:
        """Close the pool and all of its connections."""
        ...

    async def begin_transaction(self, connection: TrackedConnection) -> None:
        """Begin a transaction. No-op if one is already open."""
        ...

    async def commit(self, connection: TrackedConnection) -> None:
        """Commit the open transaction."""
        ...

    async def rollback(self, connection: TrackedConnection) -> None:
        """Roll back the open transaction. No-op if none is open."""
        ...

    async def execute(self, connection: TrackedConnection, sql: str) -> Any:
        """Execute SQL and return the backend's raw result."""
        ...

    async def set_read_only(self, connection: TrackedConnection) -> None:
        """Put the session into read-only mode."""
        ...

    async def unset_read_only(self, connection: TrackedConnection) -> None:
        """Return the session to read-write mode."""
        ...

    def normalize_result(self, raw: Any) -> NormalizedResult:
        """Coerce a raw result into a NormalizedResult."""
        ...

    def supports_read_only_mode(self) -> bool:
        """Whether set_read_only actually restricts the session."""
        ...
