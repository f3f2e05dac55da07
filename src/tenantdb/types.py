"""Core type definitions for tenantdb."""

from enum import Enum
from typing import Any, TypeAlias

SchemaName: TypeAlias = str
TableName: TypeAlias = str
ColumnName: TypeAlias = str
Row: TypeAlias = dict[str, Any]

__all__ = [
    "SchemaName",
    "TableName",
    "ColumnName",
    "Row",
    "LogLevel",
    "Action",
    "ValueKind",
]


class LogLevel(Enum):
    """Levels written to the operation log."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"


class Action(Enum):
    """Operations recorded in the operation log."""

    DATABASE_CREATED = "DATABASE_CREATED"
    DATABASE_CREATION_FAILED = "DATABASE_CREATION_FAILED"
    DATABASE_ACCESSED = "DATABASE_ACCESSED"
    DATABASE_ACCESS_FAILED = "DATABASE_ACCESS_FAILED"
    DATABASE_MIGRATED = "DATABASE_MIGRATED"
    DATABASE_MIGRATION_FAILED = "DATABASE_MIGRATION_FAILED"
    DATABASE_IMPORTED = "DATABASE_IMPORTED"
    DATABASE_IMPORT_FAILED = "DATABASE_IMPORT_FAILED"


class ValueKind(Enum):
    """How a row value is bound on import, decided by the column's declared type."""

    NULL = "null"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    JSON = "json"
