"""db-bridge exception hierarchy.

Only configuration errors are meant to escape to the process level. Every
other error raised below the engine is caught by ``QueryEngine`` and turned
into an error envelope.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all db-bridge errors."""


# --- Configuration ---


class ConfigurationError(BridgeError):
    """Raised at startup when the bridge cannot be configured."""


class UnsupportedBackendError(ConfigurationError):
    """Raised when the backend identifier is not one of the known backends."""

    def __init__(self, backend: str, supported: list[str]) -> None:
        self.backend = backend
        self.supported = supported
        super().__init__(
            f"Unsupported database type: {backend}. Supported types: {', '.join(supported)}"
        )


class SchemaPermissionFormatError(ConfigurationError):
    """Raised when a SCHEMA_*_PERMISSIONS value cannot be parsed."""

    def __init__(self, value: str, detail: str) -> None:
        self.value = value
        super().__init__(f"Invalid schema permission entry '{value}': {detail}")


# --- Adapter ---


class AdapterError(BridgeError):
    """Base for adapter errors."""


class ConnectionError(AdapterError):  # noqa: A001
    """Raised when the backend cannot be reached or a connection cannot be acquired."""


class PoolError(AdapterError):
    """Raised on connection pool misuse."""


# --- Transaction ---


class TransactionError(BridgeError):
    """Base for transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")


# --- Execution ---


class ExecutionError(BridgeError):
    """Base for statement execution errors."""


class QueryTimeoutError(ExecutionError):
    """Raised when a statement does not finish within the caller's timeout."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Query timed out after {timeout:g} seconds")
