"""Conversion of row values between the driver and export documents."""

import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from psycopg2.extras import Json

from tenantdb.schema.models import ColumnDescriptor
from tenantdb.types import Row, ValueKind

__all__ = ["column_kind", "value_kind", "to_document_value", "normalize_row", "bind_value"]

_NUMBER_TYPES = {
    "smallint",
    "integer",
    "bigint",
    "numeric",
    "decimal",
    "real",
    "double precision",
    "money",
}

_TIMESTAMP_TYPES = {
    "date",
    "time without time zone",
    "time with time zone",
    "timestamp without time zone",
    "timestamp with time zone",
    "interval",
}

_JSON_TYPES = {"json", "jsonb"}

_TRUE_STRINGS = {"true", "t", "yes", "y", "on", "1"}
_FALSE_STRINGS = {"false", "f", "no", "n", "off", "0"}


def column_kind(column: ColumnDescriptor) -> ValueKind:
    """Classify a column by its declared type."""
    data_type = column.data_type.strip().lower()
    if data_type in _NUMBER_TYPES:
        return ValueKind.NUMBER
    if data_type == "boolean":
        return ValueKind.BOOLEAN
    if data_type in _TIMESTAMP_TYPES:
        return ValueKind.TIMESTAMP
    if data_type in _JSON_TYPES:
        return ValueKind.JSON
    return ValueKind.TEXT


def value_kind(value: Any, column: ColumnDescriptor) -> ValueKind:
    """Kind of a single document value: NULL for None, else the column's kind."""
    if value is None:
        return ValueKind.NULL
    return column_kind(column)


def to_document_value(value: Any) -> Any:
    """Convert a driver value into a JSON-safe document value."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return f"{value.total_seconds()} seconds"
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return "\\x" + bytes(value).hex()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {str(k): to_document_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document_value(v) for v in value]
    return str(value)


def normalize_row(row: Row) -> Row:
    return {key: to_document_value(value) for key, value in row.items()}


def bind_value(value: Any, column: ColumnDescriptor) -> Any:
    """Prepare a document value for binding into column.

    Only JSON and BOOLEAN change how a value is bound: JSON values are
    wrapped for the driver and boolean strings are parsed. NULL, NUMBER,
    TIMESTAMP and TEXT values are passed through unchanged and parsed by
    PostgreSQL against the column type.
    """
    kind = value_kind(value, column)
    if kind is ValueKind.NULL:
        return None
    if kind is ValueKind.JSON:
        return Json(value)
    if kind is ValueKind.BOOLEAN and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return value
