"""db-bridge - permission-enforcing SQL execution over MySQL, PostgreSQL and SQLite."""

from __future__ import annotations

from db_bridge.adapters.factory import create_adapter
from db_bridge.adapters.protocol import AsyncAdapter, NormalizedResult
from db_bridge.config import Settings, configure_logging
from db_bridge.core.classifier import QueryClassification, classify
from db_bridge.core.connection import AsyncConnectionManager, ConnectionConfig, SSLConfig
from db_bridge.core.engine import QueryEngine
from db_bridge.core.enums import DatabaseBackend, StatementKind, WriteOperation
from db_bridge.core.exceptions import (
    AdapterError,
    BridgeError,
    ConfigurationError,
    ConnectionError,  # noqa: A004
    ExecutionError,
    PoolError,
    QueryTimeoutError,
    SchemaPermissionFormatError,
    TransactionError,
    TransactionStateError,
    UnsupportedBackendError,
)
from db_bridge.core.permissions import PermissionDecision, PermissionPolicy, evaluate
from db_bridge.core.response import ResponseEnvelope, TextContent

__all__ = [
    # Configuration
    "Settings",
    "configure_logging",
    "ConnectionConfig",
    "SSLConfig",
    # Engine
    "QueryEngine",
    "AsyncConnectionManager",
    # Adapters
    "AsyncAdapter",
    "NormalizedResult",
    "create_adapter",
    # Classification and permissions
    "classify",
    "QueryClassification",
    "evaluate",
    "PermissionPolicy",
    "PermissionDecision",
    # Responses
    "ResponseEnvelope",
    "TextContent",
    # Enums
    "DatabaseBackend",
    "StatementKind",
    "WriteOperation",
    # Exceptions
    "BridgeError",
    "ConfigurationError",
    "UnsupportedBackendError",
    "SchemaPermissionFormatError",
    "AdapterError",
    "ConnectionError",
    "PoolError",
    "TransactionError",
    "TransactionStateError",
    "ExecutionError",
    "QueryTimeoutError",
]
