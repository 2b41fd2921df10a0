"""Response envelopes.

The envelope is the only shape handed back to the transport: a list of
text blocks and an error flag.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from db_bridge.adapters.protocol import NormalizedResult
from db_bridge.core.classifier import QueryClassification
from db_bridge.core.enums import WriteOperation


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ResponseEnvelope(BaseModel):
    """Transport-facing result of one statement."""

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent]
    is_error: bool = Field(default=False, alias="isError")

    @property
    def text(self) -> str:
        """The primary text block."""
        return self.content[0].text if self.content else ""

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def format_rows(rows: list[dict[str, Any]]) -> str:
    # default=str covers Decimal, datetime and bytes columns
    return json.dumps(rows, indent=2, default=str)


def timing_text(elapsed_ms: float) -> str:
    return f"Query execution time: {elapsed_ms:.2f} ms"


def error_envelope(message: str) -> ResponseEnvelope:
    return ResponseEnvelope(content=[TextContent(text=message)], is_error=True)


def success_envelope(text: str, elapsed_ms: float) -> ResponseEnvelope:
    return ResponseEnvelope(
        content=[TextContent(text=text), TextContent(text=timing_text(elapsed_ms))],
        is_error=False,
    )


def write_summary(result: NormalizedResult, classification: QueryClassification) -> str:
    """Human-readable summary of a committed write.

    Insert wins over update, update over delete, delete over DDL. Anything
    else falls back to the rows as JSON.
    """
    operations = classification.write_operations
    schema = classification.schema_label
    affected = result.affected_rows or 0

    if WriteOperation.INSERT in operations:
        return (
            f"Insert successful on schema '{schema}'. Affected rows: {affected}, "
            f"Last insert ID: {result.insert_id or 0}"
        )
    if WriteOperation.UPDATE in operations:
        return (
            f"Update successful on schema '{schema}'. Affected rows: {affected}, "
            f"Changed rows: {result.changed_rows or 0}"
        )
    if WriteOperation.DELETE in operations:
        return f"Delete successful on schema '{schema}'. Affected rows: {affected}"
    if WriteOperation.DDL in operations:
        return f"DDL operation successful on schema '{schema}'."
    return format_rows(result.rows)


def build_write_response(
    result: NormalizedResult, elapsed_ms: float, classification: QueryClassification
) -> ResponseEnvelope:
    return success_envelope(write_summary(result, classification), elapsed_ms)


def build_read_response(result: NormalizedResult, elapsed_ms: float) -> ResponseEnvelope:
    return success_envelope(format_rows(result.rows), elapsed_ms)
