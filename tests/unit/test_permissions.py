"""Unit tests for the permission policy."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from db_bridge.core.classifier import QueryClassification
from db_bridge.core.enums import StatementKind, WriteOperation
from db_bridge.core.exceptions import ConfigurationError, SchemaPermissionFormatError
from db_bridge.core.permissions import (
    PermissionPolicy,
    evaluate,
    is_operation_allowed,
    parse_schema_permissions,
)


def _classified(*kinds: StatementKind, schema: str | None = None) -> QueryClassification:
    return QueryClassification(frozenset(kinds), schema)


class TestParseSchemaPermissions:
    def test_empty(self) -> None:
        assert parse_schema_permissions(None) == {}
        assert parse_schema_permissions("") == {}

    def test_pairs(self) -> None:
        assert parse_schema_permissions("test_db:true, prod : false") == {
            "test_db": True,
            "prod": False,
        }

    def test_boolean_spellings(self) -> None:
        parsed = parse_schema_permissions("a:1,b:yes,c:ON,d:0,e:no,f:Off")

        assert parsed == {"a": True, "b": True, "c": True, "d": False, "e": False, "f": False}

    def test_trailing_comma(self) -> None:
        assert parse_schema_permissions("a:true,") == {"a": True}

    def test_missing_separator(self) -> None:
        with pytest.raises(SchemaPermissionFormatError, match="'test_db'"):
            parse_schema_permissions("test_db")

    def test_invalid_flag(self) -> None:
        with pytest.raises(ConfigurationError, match="not a boolean"):
            parse_schema_permissions("test_db:maybe")


class TestIsOperationAllowed:
    def test_global_default_denies(self) -> None:
        assert is_operation_allowed(WriteOperation.INSERT, None, PermissionPolicy()) is False

    def test_global_flag(self) -> None:
        policy = PermissionPolicy(global_permissions={WriteOperation.UPDATE: True})

        assert is_operation_allowed(WriteOperation.UPDATE, None, policy) is True
        assert is_operation_allowed(WriteOperation.UPDATE, "any", policy) is True
        assert is_operation_allowed(WriteOperation.DELETE, None, policy) is False

    def test_schema_override_wins_both_ways(self) -> None:
        policy = PermissionPolicy(
            global_permissions={WriteOperation.INSERT: True},
            schema_permissions={
                "locked": {WriteOperation.INSERT: False},
                "open": {WriteOperation.DELETE: True},
            },
        )

        assert is_operation_allowed(WriteOperation.INSERT, "locked", policy) is False
        assert is_operation_allowed(WriteOperation.INSERT, "other", policy) is True
        assert is_operation_allowed(WriteOperation.DELETE, "open", policy) is True
        assert is_operation_allowed(WriteOperation.DELETE, None, policy) is False

    def test_default_schema_ignores_overrides(self) -> None:
        policy = PermissionPolicy(schema_permissions={"default": {WriteOperation.DDL: True}})

        assert is_operation_allowed(WriteOperation.DDL, None, policy) is False

    def test_multi_db_mode_denies_everything(self) -> None:
        policy = PermissionPolicy(
            global_permissions={op: True for op in WriteOperation},
            schema_permissions={"app": {WriteOperation.INSERT: True}},
            multi_db_mode=True,
        )

        for op in WriteOperation:
            assert is_operation_allowed(op, "app", policy) is False

    def test_multi_db_write_mode_opts_in(self) -> None:
        policy = PermissionPolicy(
            global_permissions={WriteOperation.INSERT: True},
            multi_db_mode=True,
            multi_db_write_allowed=True,
        )

        assert is_operation_allowed(WriteOperation.INSERT, "app", policy) is True


class TestEvaluate:
    def test_reads_always_allowed(self) -> None:
        decision = evaluate(_classified(StatementKind.SELECT), PermissionPolicy())

        assert decision.allowed is True
        assert decision.message == ""

    def test_global_denial_message(self) -> None:
        decision = evaluate(_classified(StatementKind.INSERT), PermissionPolicy())

        assert decision.allowed is False
        assert decision.message == (
            "Error: INSERT operations are not allowed for schema 'default'. "
            "Ask the administrator to update ALLOW_INSERT_OPERATION."
        )

    def test_schema_denial_names_schema_setting(self) -> None:
        decision = evaluate(_classified(StatementKind.DROP, schema="prod"), PermissionPolicy())

        assert decision.operation == WriteOperation.DDL
        assert decision.setting == "SCHEMA_DDL_PERMISSIONS"
        assert "schema 'prod'" in decision.message

    def test_multi_db_denial_names_multi_db_setting(self) -> None:
        decision = evaluate(
            _classified(StatementKind.UPDATE, schema="app"), PermissionPolicy(multi_db_mode=True)
        )

        assert decision.setting == "MULTI_DB_WRITE_MODE"

    def test_any_denied_operation_denies_statement(self) -> None:
        policy = PermissionPolicy(global_permissions={WriteOperation.INSERT: True})

        decision = evaluate(_classified(StatementKind.INSERT, StatementKind.DELETE), policy)

        assert decision.allowed is False
        assert decision.operation == WriteOperation.DELETE

    def test_all_allowed(self) -> None:
        policy = PermissionPolicy(
            global_permissions={WriteOperation.INSERT: True, WriteOperation.DELETE: True}
        )

        decision = evaluate(_classified(StatementKind.INSERT, StatementKind.DELETE), policy)

        assert decision.allowed is True

    def test_policy_is_frozen(self) -> None:
        policy = PermissionPolicy()

        with pytest.raises(ValidationError):
            policy.read_only_mode = True  # type: ignore[misc]
