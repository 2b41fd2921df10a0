"""Permission policy and evaluation.

A schema-specific setting wins over the global flag for the same operation.
Multi-database mode (no database bound to the connection) denies every
write unless MULTI_DB_WRITE_MODE opts in, since one connection could
otherwise reach schemas the operator never meant to expose.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from db_bridge.core.classifier import QueryClassification
from db_bridge.core.enums import WriteOperation
from db_bridge.core.exceptions import SchemaPermissionFormatError

MULTI_DB_WRITE_SETTING = "MULTI_DB_WRITE_MODE"

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


class PermissionPolicy(BaseModel):
    """Write permissions, loaded once at startup."""

    model_config = ConfigDict(frozen=True)

    global_permissions: dict[WriteOperation, bool] = {}
    schema_permissions: dict[str, dict[WriteOperation, bool]] = {}
    read_only_mode: bool = False
    multi_db_mode: bool = False
    multi_db_write_allowed: bool = False
    disable_read_only_transactions: bool = False


@dataclass(frozen=True)
class PermissionDecision:
    """Outcome of evaluating a classified statement against the policy."""

    allowed: bool
    operation: WriteOperation | None = None
    schema: str | None = None
    setting: str | None = None

    @property
    def message(self) -> str:
        if self.allowed or self.operation is None:
            return ""
        return (
            f"Error: {self.operation.name} operations are not allowed for schema "
            f"'{self.schema or 'default'}'. Ask the administrator to update {self.setting}."
        )


def parse_schema_permissions(value: str | None) -> dict[str, bool]:
    """Parse ``"schema_a:true,schema_b:false"`` into a mapping.

    Raises:
        SchemaPermissionFormatError: If an entry is not ``schema:boolean``.
    """
    permissions: dict[str, bool] = {}
    if not value:
        return permissions
    for entry in value.split(","):
        if not entry.strip():
            continue
        schema, sep, flag = entry.partition(":")
        schema, flag = schema.strip(), flag.strip().lower()
        if not sep or not schema:
            raise SchemaPermissionFormatError(entry, "expected 'schema:true' or 'schema:false'")
        if flag in _TRUE:
            permissions[schema] = True
        elif flag in _FALSE:
            permissions[schema] = False
        else:
            raise SchemaPermissionFormatError(entry, f"'{flag}' is not a boolean")
    return permissions


def is_operation_allowed(
    operation: WriteOperation, schema: str | None, policy: PermissionPolicy
) -> bool:
    """Whether *operation* may run against *schema* (None = default schema)."""
    if policy.multi_db_mode and not policy.multi_db_write_allowed:
        return False
    if schema is not None:
        override = policy.schema_permissions.get(schema, {}).get(operation)
        if override is not None:
            return override
    return policy.global_permissions.get(operation, False)


def _granting_setting(
    operation: WriteOperation, schema: str | None, policy: PermissionPolicy
) -> str:
    if policy.multi_db_mode and not policy.multi_db_write_allowed:
        return MULTI_DB_WRITE_SETTING
    if schema is not None:
        return operation.schema_setting
    return operation.global_setting


def evaluate(classification: QueryClassification, policy: PermissionPolicy) -> PermissionDecision:
    """Check every write operation in *classification*; any denial denies the statement."""
    schema = classification.schema
    for operation in classification.write_operations:
        if not is_operation_allowed(operation, schema, policy):
            return PermissionDecision(
                allowed=False,
                operation=operation,
                schema=schema,
                setting=_granting_setting(operation, schema, policy),
            )
    return PermissionDecision(allowed=True, schema=schema)
