"""
Configuration management for db-bridge.

Loads configuration from environment variables with support for .env files.
Uses Pydantic Settings for validation and type coercion. Generic DB_*
variables win over the backend-specific MYSQL_* / POSTGRESQL_* / SQLITE_*
ones.
"""

from __future__ import annotations

import logging
import sys

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from db_bridge.adapters.factory import resolve_backend
from db_bridge.core.connection import ConnectionConfig, SSLConfig
from db_bridge.core.enums import DatabaseBackend, WriteOperation
from db_bridge.core.permissions import PermissionPolicy, parse_schema_permissions

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Read once at startup; the derived ConnectionConfig and PermissionPolicy
    are immutable.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    db_type: str = Field(default="mysql", description="mysql, postgresql or sqlite")

    # Connection
    db_host: str | None = None
    db_port: int | None = None
    db_user: str | None = None
    db_pass: str | None = None
    db_name: str | None = None
    db_connection_limit: int = Field(default=10, ge=1)

    mysql_host: str | None = None
    mysql_port: int | None = None
    mysql_user: str | None = None
    mysql_pass: str | None = None
    mysql_db: str | None = None
    mysql_socket_path: str | None = None

    postgresql_host: str | None = None
    postgresql_port: int | None = None
    postgresql_db: str | None = None

    sqlite_db: str | None = None

    # TLS
    db_ssl: bool = False
    db_ssl_reject_unauthorized: bool = True
    db_ssl_ca: str | None = None
    db_ssl_cert: str | None = None
    db_ssl_key: str | None = None

    # Permissions
    db_read_only_mode: bool = False
    allow_insert_operation: bool = False
    allow_update_operation: bool = False
    allow_delete_operation: bool = False
    allow_ddl_operation: bool = False
    schema_insert_permissions: str | None = None
    schema_update_permissions: str | None = None
    schema_delete_permissions: str | None = None
    schema_ddl_permissions: str | None = None
    multi_db_write_mode: bool = False
    mysql_disable_read_only_transactions: bool = False

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def backend(self) -> DatabaseBackend:
        """Selected backend. Raises UnsupportedBackendError if unknown."""
        return resolve_backend(self.db_type)

    @property
    def database_name(self) -> str | None:
        backend = self.backend
        if backend == DatabaseBackend.MYSQL:
            return self.db_name or self.mysql_db
        if backend == DatabaseBackend.POSTGRESQL:
            return self.db_name or self.postgresql_db
        return self.db_name or self.sqlite_db or ":memory:"

    @property
    def is_multi_db_mode(self) -> bool:
        """No database bound to the connection. SQLite always has one."""
        if self.backend == DatabaseBackend.SQLITE:
            return False
        name = self.database_name
        return not name or not name.strip()

    def ssl_config(self) -> SSLConfig | None:
        if not self.db_ssl:
            return None
        return SSLConfig(
            ca=self.db_ssl_ca,
            cert=self.db_ssl_cert,
            key=self.db_ssl_key,
            reject_unauthorized=self.db_ssl_reject_unauthorized,
        )

    def connection_config(self) -> ConnectionConfig:
        backend = self.backend
        if backend == DatabaseBackend.SQLITE:
            return ConnectionConfig(database=self.database_name, pool_size=1)

        if backend == DatabaseBackend.MYSQL:
            host = self.db_host or self.mysql_host
            port = self.db_port or self.mysql_port
            socket_path = self.mysql_socket_path
        else:
            host = self.db_host or self.postgresql_host
            port = self.db_port or self.postgresql_port
            socket_path = None

        password = self.db_pass if self.db_pass is not None else self.mysql_pass
        return ConnectionConfig(
            host=None if socket_path else host,
            port=None if socket_path else port,
            socket_path=socket_path,
            user=self.db_user or self.mysql_user,
            password=password,
            database=self.database_name,
            pool_size=self.db_connection_limit,
            ssl=self.ssl_config(),
        )

    def permission_policy(self) -> PermissionPolicy:
        """Build the policy. Raises SchemaPermissionFormatError on bad values."""
        raw_schema_settings = {
            WriteOperation.INSERT: self.schema_insert_permissions,
            WriteOperation.UPDATE: self.schema_update_permissions,
            WriteOperation.DELETE: self.schema_delete_permissions,
            WriteOperation.DDL: self.schema_ddl_permissions,
        }
        schema_permissions: dict[str, dict[WriteOperation, bool]] = {}
        for operation, raw in raw_schema_settings.items():
            for schema, allowed in parse_schema_permissions(raw).items():
                schema_permissions.setdefault(schema, {})[operation] = allowed

        return PermissionPolicy(
            global_permissions={
                WriteOperation.INSERT: self.allow_insert_operation,
                WriteOperation.UPDATE: self.allow_update_operation,
                WriteOperation.DELETE: self.allow_delete_operation,
                WriteOperation.DDL: self.allow_ddl_operation,
            },
            schema_permissions=schema_permissions,
            read_only_mode=self.db_read_only_mode,
            multi_db_mode=self.is_multi_db_mode,
            multi_db_write_allowed=self.multi_db_write_mode,
            disable_read_only_transactions=self.mysql_disable_read_only_transactions,
        )


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout belongs to the stdio transport."""
    level_name = level.upper()
    if level_name not in _VALID_LOG_LEVELS:
        print(
            f"Warning: Invalid LOG_LEVEL '{level}'. "
            f"Valid levels: {', '.join(sorted(_VALID_LOG_LEVELS))}. Using INFO.",
            file=sys.stderr,
        )
        level_name = "INFO"

    logging.basicConfig(
        level=getattr(logging, level_name),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
