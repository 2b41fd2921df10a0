"""SQL statement classification.

Determines which statement kinds a piece of SQL contains and which schema
it targets. sqlglot does the parsing; when it cannot parse the text the
classifier falls back to a keyword scan over the comment-stripped
statements. Classification never rejects SQL: malformed statements are
left for the backend to report when they are executed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from db_bridge.core.enums import StatementKind, WriteOperation

logger = logging.getLogger(__name__)

_QUOTES = ("'", '"', "`")

_FIRST_KEYWORD = re.compile(r"^\s*\(*\s*(\w+)")
_WORDS = re.compile(r"\b(\w+)\b")
_USE_SCHEMA = re.compile(r"^\s*USE\s+[`\"]?(\w+)[`\"]?", re.IGNORECASE)
_QUALIFIED_TABLE = re.compile(
    r"\b(?:FROM|INTO|UPDATE|JOIN|TABLE|EXISTS)\s+[`\"]?(\w+)[`\"]?\s*\.\s*[`\"]?\w+",
    re.IGNORECASE,
)

# sqlglot expression key → statement kind
_EXPRESSION_KINDS: dict[str, StatementKind] = {
    "select": StatementKind.SELECT,
    "union": StatementKind.SELECT,
    "intersect": StatementKind.SELECT,
    "except": StatementKind.SELECT,
    "insert": StatementKind.INSERT,
    "update": StatementKind.UPDATE,
    "delete": StatementKind.DELETE,
    "create": StatementKind.CREATE,
    "alter": StatementKind.ALTER,
    "altertable": StatementKind.ALTER,
    "drop": StatementKind.DROP,
    "truncatetable": StatementKind.TRUNCATE,
}

# leading keyword → statement kind, for the fallback scan and sqlglot Commands
_KEYWORD_KINDS: dict[str, StatementKind] = {
    "SELECT": StatementKind.SELECT,
    "INSERT": StatementKind.INSERT,
    "REPLACE": StatementKind.INSERT,
    "UPDATE": StatementKind.UPDATE,
    "DELETE": StatementKind.DELETE,
    "CREATE": StatementKind.CREATE,
    "ALTER": StatementKind.ALTER,
    "DROP": StatementKind.DROP,
    "TRUNCATE": StatementKind.TRUNCATE,
}


@dataclass(frozen=True)
class QueryClassification:
    """Statement kinds found in a piece of SQL, plus the schema it names."""

    kinds: frozenset[StatementKind]
    schema: str | None = None

    @property
    def is_write(self) -> bool:
        return any(kind.is_write for kind in self.kinds)

    @property
    def write_operations(self) -> list[WriteOperation]:
        """Write operations in a stable order, without duplicates."""
        found = {kind.operation for kind in self.kinds if kind.operation is not None}
        return [op for op in WriteOperation if op in found]

    @property
    def schema_label(self) -> str:
        return self.schema or "default"


# ---------------------------------------------------------------------------
# Tokenizer (fallback path)
# ---------------------------------------------------------------------------


def _tokenize(sql: str) -> list[tuple[str, str]]:
    """Split *sql* into ``('quoted', …)`` and ``('code', …)`` tokens.

    Single-quoted strings, double-quoted and backtick-quoted identifiers are
    kept whole, with doubled quote characters treated as escapes. An
    unterminated quote swallows the rest of the text.
    """
    tokens: list[tuple[str, str]] = []
    i = 0
    n = len(sql)
    last = 0

    while i < n:
        quote = sql[i]
        if quote not in _QUOTES:
            i += 1
            continue
        if i > last:
            tokens.append(("code", sql[last:i]))
        j = i + 1
        while j < n:
            if sql[j] == quote:
                if j + 1 < n and sql[j + 1] == quote:
                    j += 2
                    continue
                j += 1
                break
            j += 1
        tokens.append(("quoted", sql[i:j]))
        last = i = j

    if last < n:
        tokens.append(("code", sql[last:]))
    return tokens


def _strip_comments_in_code(code: str) -> str:
    """Remove ``--``, ``#`` line comments and ``/* */`` block comments."""
    result: list[str] = []
    i = 0
    n = len(code)

    while i < n:
        if code[i : i + 2] == "--" or code[i] == "#":
            j = code.find("\n", i)
            if j == -1:
                break
            result.append("\n")
            i = j + 1
        elif code[i : i + 2] == "/*":
            j = code.find("*/", i + 2)
            if j == -1:
                break
            result.append(" ")
            i = j + 2
        else:
            result.append(code[i])
            i += 1

    return "".join(result)


def _split_statements(sql: str) -> list[str]:
    """Strip comments and split on statement-terminating semicolons."""
    statements: list[str] = []
    current: list[str] = []
    for kind, content in _tokenize(sql):
        if kind == "quoted":
            current.append(content)
            continue
        pieces = _strip_comments_in_code(content).split(";")
        current.append(pieces[0])
        for piece in pieces[1:]:
            statements.append("".join(current))
            current = [piece]
    statements.append("".join(current))
    return [s.strip() for s in statements if s.strip()]


def _code_only(statement: str) -> str:
    """Drop string literals, keep quoted identifiers."""
    return "".join(
        " " if kind == "quoted" and content.startswith("'") else content
        for kind, content in _tokenize(statement)
    )


def _kind_from_keyword(keyword: str) -> StatementKind:
    return _KEYWORD_KINDS.get(keyword.upper(), StatementKind.OTHER)


def _scan_statement(statement: str) -> StatementKind:
    m = _FIRST_KEYWORD.match(statement)
    if not m:
        return StatementKind.OTHER
    keyword = m.group(1).upper()
    if keyword == "WITH":
        # A CTE introduces whichever statement follows it.
        for word in _WORDS.findall(_code_only(statement)):
            kind = _kind_from_keyword(word)
            if kind in (StatementKind.INSERT, StatementKind.UPDATE, StatementKind.DELETE):
                return kind
        return StatementKind.SELECT
    return _kind_from_keyword(keyword)


def _scan_schema(statement: str) -> str | None:
    code = _code_only(statement)
    m = _USE_SCHEMA.match(code) or _QUALIFIED_TABLE.search(code)
    return m.group(1) if m else None


def _classify_by_keywords(sql: str) -> QueryClassification:
    statements = _split_statements(sql)
    kinds = {_scan_statement(s) for s in statements}
    schema = next((found for s in statements if (found := _scan_schema(s))), None)
    return QueryClassification(frozenset(kinds or {StatementKind.OTHER}), schema)


# ---------------------------------------------------------------------------
# sqlglot path
# ---------------------------------------------------------------------------


def _expression_kind(expression: exp.Expression) -> StatementKind:
    if expression.key == "command":
        words = str(expression.this or "").split()
        return _kind_from_keyword(words[0]) if words else StatementKind.OTHER
    return _EXPRESSION_KINDS.get(expression.key, StatementKind.OTHER)


def _expression_schema(expression: exp.Expression) -> str | None:
    if expression.key == "use":
        target = expression.this
        return target.name if target is not None and target.name else None
    for table in expression.find_all(exp.Table):
        if table.db:
            return table.db
    return None


def _classify_with_sqlglot(sql: str, dialect: str | None) -> QueryClassification:
    kinds: set[StatementKind] = set()
    schema: str | None = None
    for expression in sqlglot.parse(sql, read=dialect):
        if expression is None:
            continue
        kinds.add(_expression_kind(expression))
        if schema is None:
            schema = _expression_schema(expression)
    return QueryClassification(frozenset(kinds or {StatementKind.OTHER}), schema)


def classify(sql: str, dialect: str | None = None) -> QueryClassification:
    """Classify *sql* into statement kinds and an optional target schema.

    Args:
        sql: Raw SQL text, possibly several statements.
        dialect: sqlglot dialect name (``mysql``, ``postgres``, ``sqlite``).

    Returns:
        QueryClassification. Unrecognizable text classifies as ``other``.
    """
    try:
        return _classify_with_sqlglot(sql, dialect)
    except SqlglotError as e:
        logger.debug("sqlglot could not parse statement, scanning keywords: %s", e)
        return _classify_by_keywords(sql)
