"""Adapter selection: backend identifier to adapter instance."""

from __future__ import annotations

import importlib
import logging
from typing import Any

from db_bridge.core.enums import DatabaseBackend
from db_bridge.core.exceptions import ConfigurationError, UnsupportedBackendError

logger = logging.getLogger(__name__)

# backend → (module_path, class_name)
_ADAPTER_MAP: dict[DatabaseBackend, tuple[str, str]] = {
    DatabaseBackend.MYSQL: ("db_bridge.adapters.mysql", "MysqlAsyncAdapter"),
    DatabaseBackend.POSTGRESQL: ("db_bridge.adapters.postgresql", "PostgresqlAsyncAdapter"),
    DatabaseBackend.SQLITE: ("db_bridge.adapters.sqlite", "SqliteAsyncAdapter"),
}


def resolve_backend(backend: str | DatabaseBackend) -> DatabaseBackend:
    """Parse a backend identifier such as ``"mysql"``."""
    if isinstance(backend, DatabaseBackend):
        return backend
    try:
        return DatabaseBackend(backend.strip().lower())
    except ValueError:
        raise UnsupportedBackendError(backend, [b.value for b in DatabaseBackend]) from None


def create_adapter(backend: str | DatabaseBackend) -> Any:
    """Create the adapter for *backend*.

    Raises:
        UnsupportedBackendError: If the identifier is unknown.
        ConfigurationError: If the adapter module cannot be loaded.
    """
    resolved = resolve_backend(backend)
    logger.info("Creating database adapter for type: %s", resolved.value)

    module_path, cls_name = _ADAPTER_MAP[resolved]
    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Failed to load adapter for '{resolved.value}': {e}") from e
