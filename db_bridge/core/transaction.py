"""Per-connection transaction state.

Every checked-out connection is wrapped in a ``TrackedConnection`` so the
adapters can make begin/commit/rollback idempotent: cleanup paths may
roll back a transaction that an earlier step already closed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from db_bridge.core.exceptions import TransactionStateError


class ConnectionState(Enum):
    IDLE = "idle"
    TRANSACTION_OPEN = "transaction_open"
    READ_ONLY_SET = "read_only_set"
    EXECUTING = "executing"
    TRANSACTION_CLOSED = "transaction_closed"


_OPEN_STATES = frozenset(
    {
        ConnectionState.TRANSACTION_OPEN,
        ConnectionState.READ_ONLY_SET,
        ConnectionState.EXECUTING,
    }
)


class TrackedConnection:
    """A native connection handle plus its transaction state."""

    def __init__(self, raw: Any) -> None:
        self.raw = raw
        self.state = ConnectionState.IDLE
        self.read_only = False
        self.faulted = False

    def __repr__(self) -> str:
        return f"TrackedConnection(state={self.state.value}, read_only={self.read_only})"

    @property
    def in_transaction(self) -> bool:
        return self.state in _OPEN_STATES

    def reset(self) -> None:
        """Prepare a reused handle for a new checkout."""
        self.state = ConnectionState.IDLE
        self.faulted = False

    def mark_begun(self) -> None:
        self.state = ConnectionState.TRANSACTION_OPEN

    def mark_read_only(self) -> None:
        self.read_only = True
        if self.in_transaction:
            self.state = ConnectionState.READ_ONLY_SET

    def mark_read_write(self) -> None:
        self.read_only = False

    def mark_executing(self) -> ConnectionState:
        """Enter EXECUTING and return the state to restore afterwards."""
        previous = self.state
        if self.in_transaction:
            self.state = ConnectionState.EXECUTING
        return previous

    def mark_executed(self, previous: ConnectionState) -> None:
        if self.state == ConnectionState.EXECUTING:
            self.state = previous

    def mark_closed(self) -> None:
        self.state = ConnectionState.TRANSACTION_CLOSED

    def check_can_commit(self) -> None:
        if not self.in_transaction:
            raise TransactionStateError(self.state.value, "commit")
