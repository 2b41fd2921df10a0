"""Backend, statement and operation enumerations."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"

    @property
    def dialect(self) -> str:
        """Dialect name understood by sqlglot."""
        return _DIALECTS[self]


_DIALECTS = {
    DatabaseBackend.MYSQL: "mysql",
    DatabaseBackend.POSTGRESQL: "postgres",
    DatabaseBackend.SQLITE: "sqlite",
}


class WriteOperation(Enum):
    """Write operations subject to the permission policy."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    DDL = "ddl"

    @property
    def global_setting(self) -> str:
        return f"ALLOW_{self.name}_OPERATION"

    @property
    def schema_setting(self) -> str:
        return f"SCHEMA_{self.name}_PERMISSIONS"


class StatementKind(Enum):
    """Statement kinds recognized by the classifier."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    CREATE = "create"
    ALTER = "alter"
    DROP = "drop"
    TRUNCATE = "truncate"
    OTHER = "other"

    @property
    def operation(self) -> WriteOperation | None:
        """The write operation this kind requires, or None for reads."""
        return _OPERATIONS.get(self)

    @property
    def is_write(self) -> bool:
        return self in _OPERATIONS


_OPERATIONS = {
    StatementKind.INSERT: WriteOperation.INSERT,
    StatementKind.UPDATE: WriteOperation.UPDATE,
    StatementKind.DELETE: WriteOperation.DELETE,
    StatementKind.CREATE: WriteOperation.DDL,
    StatementKind.ALTER: WriteOperation.DDL,
    StatementKind.DROP: WriteOperation.DDL,
    StatementKind.TRUNCATE: WriteOperation.DDL,
}
