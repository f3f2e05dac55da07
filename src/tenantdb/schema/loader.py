"""Load export documents from JSON or YAML files."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from tenantdb.exceptions import DocumentLoadError
from tenantdb.schema.models import (
    ColumnDescriptor,
    ConstraintDescriptor,
    ExportDocument,
    TableSnapshot,
    parse_timestamp,
)

VALID_DOCUMENT_FIELDS = {"database", "timestamp", "tables"}

VALID_TABLE_FIELDS = {"name", "schema", "data", "constraints"}

VALID_COLUMN_FIELDS = {
    "column_name",
    "data_type",
    "character_maximum_length",
    "is_nullable",
    "column_default",
}

VALID_CONSTRAINT_FIELDS = {"constraint_name", "constraint_type"}


def load_document(path: Path) -> ExportDocument:
    """Load an export document from a .json, .yaml or .yml file."""
    if not path.is_file():
        raise DocumentLoadError(f"Export file does not exist: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise DocumentLoadError(f"Cannot parse export file {path}: {e}") from e

    if data is None:
        raise DocumentLoadError(f"Empty export file: {path}")
    return document_from_dict(data)


def document_from_dict(data: Any) -> ExportDocument:
    """Parse an export document from its JSON shape."""
    if not isinstance(data, dict):
        raise DocumentLoadError("Export document must be an object")
    _check_fields(data, VALID_DOCUMENT_FIELDS, "document")

    database = data.get("database")
    if not database:
        raise DocumentLoadError("Export document missing 'database' field")
    if not isinstance(database, str):
        raise DocumentLoadError(
            f"Export document 'database' must be a string, got {database!r}"
        )

    raw_timestamp = data.get("timestamp")
    if not raw_timestamp:
        raise DocumentLoadError("Export document missing 'timestamp' field")
    if isinstance(raw_timestamp, datetime):
        timestamp = raw_timestamp
    else:
        try:
            timestamp = parse_timestamp(str(raw_timestamp))
        except ValueError as e:
            raise DocumentLoadError(f"Invalid timestamp {raw_timestamp!r}") from e
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    tables: list[TableSnapshot] = []
    seen: set[str] = set()
    for table_data in _as_list(data.get("tables"), "'tables'"):
        table = _parse_table(table_data)
        if table.name in seen:
            raise DocumentLoadError(f"Duplicate table name '{table.name}' in document")
        seen.add(table.name)
        tables.append(table)

    return ExportDocument(database=database, timestamp=timestamp, tables=tables)


def _check_fields(data: dict, valid: set[str], what: str) -> None:
    unknown_fields = set(data.keys()) - valid
    if unknown_fields:
        raise DocumentLoadError(
            f"Unknown field(s) in {what}: {', '.join(sorted(unknown_fields))}"
        )


def _as_list(value: Any, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DocumentLoadError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _parse_table(data: Any) -> TableSnapshot:
    if not isinstance(data, dict):
        raise DocumentLoadError("Table entry must be an object")
    _check_fields(data, VALID_TABLE_FIELDS, "table definition")

    name = data.get("name")
    if not name:
        raise DocumentLoadError("Table definition missing 'name' field")
    if not isinstance(name, str):
        raise DocumentLoadError(f"Table name must be a string, got {name!r}")

    columns = [
        _parse_column(col, name)
        for col in _as_list(data.get("schema"), f"'schema' of table '{name}'")
    ]
    seen = set()
    for col in columns:
        if col.name in seen:
            raise DocumentLoadError(f"Duplicate column name '{col.name}' in table '{name}'")
        seen.add(col.name)

    rows = _as_list(data.get("data"), f"'data' of table '{name}'")
    for row in rows:
        if not isinstance(row, dict):
            raise DocumentLoadError(f"Row in table '{name}' must be an object")

    constraints = []
    for cc_data in _as_list(data.get("constraints"), f"'constraints' of table '{name}'"):
        if not isinstance(cc_data, dict):
            raise DocumentLoadError(f"Constraint in table '{name}' must be an object")
        _check_fields(cc_data, VALID_CONSTRAINT_FIELDS, "constraint definition")
        cc_name = cc_data.get("constraint_name")
        cc_type = cc_data.get("constraint_type")
        if not cc_name or not cc_type:
            raise DocumentLoadError(
                f"Constraint in table '{name}' missing name or type"
            )
        if not isinstance(cc_name, str) or not isinstance(cc_type, str):
            raise DocumentLoadError(
                f"Constraint name and type in table '{name}' must be strings"
            )
        constraints.append(ConstraintDescriptor.from_row(cc_data))

    return TableSnapshot(name=name, columns=columns, rows=rows, constraints=constraints)


def _parse_column(data: Any, table_name: str) -> ColumnDescriptor:
    if not isinstance(data, dict):
        raise DocumentLoadError(f"Column entry in table '{table_name}' must be an object")
    _check_fields(data, VALID_COLUMN_FIELDS, "column definition")

    column_name = data.get("column_name")
    if not column_name:
        raise DocumentLoadError(f"Column in table '{table_name}' missing 'column_name'")
    if not isinstance(column_name, str):
        raise DocumentLoadError(
            f"Column name in table '{table_name}' must be a string, got {column_name!r}"
        )

    data_type = data.get("data_type")
    if not data_type:
        raise DocumentLoadError(f"Column '{column_name}' missing 'data_type' field")
    if not isinstance(data_type, str):
        raise DocumentLoadError(
            f"Column '{column_name}' data_type must be a string, got {data_type!r}"
        )

    if data.get("is_nullable", "YES") not in ("YES", "NO"):
        raise DocumentLoadError(
            f"Column '{column_name}' is_nullable must be 'YES' or 'NO', "
            f"got {data['is_nullable']!r}"
        )

    max_length = data.get("character_maximum_length")
    if max_length is not None and (isinstance(max_length, bool) or not isinstance(max_length, int)):
        raise DocumentLoadError(
            f"Column '{column_name}' character_maximum_length must be an integer, "
            f"got {max_length!r}"
        )

    default = data.get("column_default")
    if default is not None and not isinstance(default, str):
        raise DocumentLoadError(
            f"Column '{column_name}' column_default must be a string, got {default!r}"
        )

    return ColumnDescriptor.from_row(data)
