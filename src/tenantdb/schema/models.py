"""Export document representation classes."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from tenantdb.types import Row


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing Z."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    """Current instant truncated to milliseconds, matching the document format."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Column metadata captured from information_schema.columns."""

    name: str
    data_type: str
    character_maximum_length: Optional[int] = None
    nullable: bool = True
    default: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "column_name": self.name,
            "data_type": self.data_type,
            "character_maximum_length": self.character_maximum_length,
            "is_nullable": "YES" if self.nullable else "NO",
            "column_default": self.default,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ColumnDescriptor":
        """Build from a catalog row or an exported column dict."""
        max_length = row.get("character_maximum_length")
        return cls(
            name=row["column_name"],
            data_type=row["data_type"],
            character_maximum_length=int(max_length) if max_length is not None else None,
            nullable=row.get("is_nullable", "YES") != "NO",
            default=row.get("column_default"),
        )


@dataclass(frozen=True)
class ConstraintDescriptor:
    """
    Declared table constraint.

    Captured for information only. Import does not recreate constraints.
    """

    name: str
    kind: str

    def to_dict(self) -> dict[str, Any]:
        return {"constraint_name": self.name, "constraint_type": self.kind}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ConstraintDescriptor":
        return cls(name=row["constraint_name"], kind=row["constraint_type"])


@dataclass
class TableSnapshot:
    """Structure and full contents of one table."""

    name: str
    columns: list[ColumnDescriptor]
    rows: list[Row] = field(default_factory=list)
    constraints: list[ConstraintDescriptor] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        """Get a column by name."""
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "schema": [col.to_dict() for col in self.columns],
            "data": [dict(row) for row in self.rows],
            "constraints": [c.to_dict() for c in self.constraints],
        }


@dataclass
class ExportDocument:
    """Portable snapshot of a schema: table definitions plus data.

    Holds copies of all values; nothing refers back to a live connection.
    """

    database: str
    timestamp: datetime
    tables: list[TableSnapshot] = field(default_factory=list)

    def get_table(self, name: str) -> Optional[TableSnapshot]:
        """Get a table snapshot by name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def table_names(self) -> list[str]:
        return [t.name for t in self.tables]

    def to_dict(self) -> dict[str, Any]:
        return {
            "database": self.database,
            "timestamp": format_timestamp(self.timestamp),
            "tables": [t.to_dict() for t in self.tables],
        }


@dataclass
class MigrationResult:
    """Outcome of an import or migrate. Not persisted."""

    success: bool
    message: str
    tables_count: Optional[int] = None
    timestamp: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.tables_count is not None:
            data["tablesCount"] = self.tables_count
        if self.timestamp is not None:
            data["timestamp"] = format_timestamp(self.timestamp)
        return data


@dataclass(frozen=True)
class SchemaInfo:
    """A tenant schema as listed to operators. Size is always 0."""

    name: str
    size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "size": self.size}
