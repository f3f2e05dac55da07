"""Export a schema's tables and data into an ExportDocument."""

import json
import logging
from pathlib import Path
from typing import Any

import psycopg2
import yaml

from tenantdb.exceptions import CatalogError, SchemaNotFoundError
from tenantdb.schema.catalog import CatalogReader, SQLClient
from tenantdb.schema.ddl import select_all_sql
from tenantdb.schema.identifiers import validate_identifier
from tenantdb.schema.models import ExportDocument, TableSnapshot, utc_now
from tenantdb.schema.values import normalize_row

logger = logging.getLogger(__name__)


class Exporter:
    """Walk a schema's tables and capture structure, rows and constraints.

    Tables are read one query at a time with no enclosing transaction, so a
    table written to during the export may not be consistent with its
    siblings. Row order is whatever the database returns.
    """

    def __init__(self, client: SQLClient, catalog: CatalogReader) -> None:
        self._client = client
        self._catalog = catalog

    def export(self, schema: str) -> ExportDocument:
        validate_identifier(schema, "schema")
        if not self._catalog.schema_exists(schema):
            raise SchemaNotFoundError(schema)

        document = ExportDocument(database=schema, timestamp=utc_now())

        for table_name in self._catalog.list_tables(schema):
            document.tables.append(self.export_table(schema, table_name))

        logger.info(
            "Exported schema '%s' (%d tables)", schema, len(document.tables)
        )
        return document

    def export_table(self, schema: str, table_name: str) -> TableSnapshot:
        """Capture a single table."""
        columns = self._catalog.describe_columns(schema, table_name)
        try:
            rows = self._client.fetchall(select_all_sql(schema, table_name))
        except psycopg2.Error as e:
            raise CatalogError(
                f"Failed to read data of '{schema}.{table_name}': {e}"
            ) from e
        constraints = self._catalog.list_constraints(schema, table_name)

        return TableSnapshot(
            name=table_name,
            columns=columns,
            rows=[normalize_row(row) for row in rows],
            constraints=constraints,
        )


def document_to_dict(document: ExportDocument) -> dict[str, Any]:
    """Convert a document to its JSON shape."""
    return document.to_dict()


def export_document_json(document: ExportDocument, indent: int = 2) -> str:
    return json.dumps(document_to_dict(document), indent=indent, ensure_ascii=False)


def export_document_yaml(document: ExportDocument) -> str:
    return yaml.dump(
        document_to_dict(document),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def write_document(document: ExportDocument, path: Path) -> Path:
    """Write a document to path. .yaml/.yml files get YAML, anything else JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in (".yaml", ".yml"):
        content = export_document_yaml(document)
    else:
        content = export_document_json(document) + "\n"
    path.write_text(content, encoding="utf-8")
    return path
