"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from db_bridge.adapters.protocol import NormalizedResult, normalize_shape
from db_bridge.core.connection import AsyncConnectionManager, ConnectionConfig
from db_bridge.core.engine import QueryEngine
from db_bridge.core.enums import DatabaseBackend, WriteOperation
from db_bridge.core.permissions import PermissionPolicy
from db_bridge.core.transaction import TrackedConnection


class RecordingAdapter:
    """In-memory adapter that records every call made by the engine.

    ``failures`` maps a method name to the exception it should raise.
    """

    def __init__(
        self,
        *,
        read_only_support: bool = True,
        result: Any = None,
        failures: dict[str, Exception] | None = None,
        execute_delay: float = 0.0,
    ) -> None:
        self.calls: list[str] = []
        self.executed: list[str] = []
        self.read_only_support = read_only_support
        self.result = [{"1": 1}] if result is None else result
        self.failures = failures or {}
        self.execute_delay = execute_delay

    @property
    def backend(self) -> DatabaseBackend:
        return DatabaseBackend.MYSQL

    def count(self, name: str) -> int:
        return self.calls.count(name)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    async def create_pool(self, config: ConnectionConfig) -> Any:
        await asyncio.sleep(0)
        self._record("create_pool")
        return {"config": config}

    async def acquire_connection(self, pool: Any) -> TrackedConnection:
        self._record("acquire")
        return TrackedConnection(object())

    async def release_connection(self, connection: TrackedConnection, pool: Any) -> None:
        self._record("release")

    async def discard_connection(self, connection: TrackedConnection, pool: Any) -> None:
        connection.mark_closed()
        self._record("discard")

    async def close_pool(self, pool: Any) -> None:
        self._record("close_pool")

    async def begin_transaction(self, connection: TrackedConnection) -> None:
        self._record("begin")
        connection.mark_begun()

    async def commit(self, connection: TrackedConnection) -> None:
        connection.check_can_commit()
        self._record("commit")
        connection.mark_closed()

    async def rollback(self, connection: TrackedConnection) -> None:
        self._record("rollback")
        connection.mark_closed()

    async def execute(self, connection: TrackedConnection, sql: str) -> Any:
        self.executed.append(sql)
        if self.execute_delay:
            await asyncio.sleep(self.execute_delay)
        self._record("execute")
        return self.result

    async def set_read_only(self, connection: TrackedConnection) -> None:
        self._record("set_read_only")
        connection.mark_read_only()

    async def unset_read_only(self, connection: TrackedConnection) -> None:
        self._record("unset_read_only")
        connection.mark_read_write()

    def normalize_result(self, raw: Any) -> NormalizedResult:
        return normalize_shape(raw)

    def supports_read_only_mode(self) -> bool:
        return self.read_only_support


def all_writes(allowed: bool) -> dict[WriteOperation, bool]:
    return {op: allowed for op in WriteOperation}


@pytest.fixture
def recording_adapter() -> RecordingAdapter:
    return RecordingAdapter()


@pytest.fixture
def sqlite_config(tmp_path: Path) -> ConnectionConfig:
    """SQLite connection config backed by a temporary file."""
    return ConnectionConfig(database=str(tmp_path / "bridge.db"), pool_size=1)


@pytest.fixture
def permissive_policy() -> PermissionPolicy:
    return PermissionPolicy(global_permissions=all_writes(True))


@pytest.fixture
def make_engine():
    """Build a QueryEngine around a RecordingAdapter.

    Usage:
        engine, adapter = make_engine(policy=..., read_only_support=False)
    """

    def _make(
        policy: PermissionPolicy | None = None, **adapter_kwargs: Any
    ) -> tuple[QueryEngine, RecordingAdapter]:
        adapter = RecordingAdapter(**adapter_kwargs)
        manager = AsyncConnectionManager(ConnectionConfig(database="app"), adapter)
        return QueryEngine(manager, policy or PermissionPolicy(), dialect="mysql"), adapter

    return _make
