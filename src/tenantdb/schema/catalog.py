"""Schema introspection from the PostgreSQL information_schema."""

import logging
from typing import Any, Optional, Protocol, Sequence

import psycopg2

from tenantdb.exceptions import CatalogError
from tenantdb.schema.models import ColumnDescriptor, ConstraintDescriptor, SchemaInfo

logger = logging.getLogger(__name__)


class SQLClient(Protocol):
    """Protocol for SQL client used by the catalog reader and exporter."""

    def fetchall(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> list[dict[str, Any]]: ...


class CatalogReader:
    """Read-only queries against the system catalogs.

    Names are always bound as parameters here, so no identifier validation
    is needed. Driver failures surface as CatalogError without retry.
    """

    SYSTEM_SCHEMAS = ("pg_catalog", "information_schema", "pg_toast")

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    def _fetch(self, sql: str, params: Sequence[Any], what: str) -> list[dict[str, Any]]:
        try:
            return self._client.fetchall(sql, params)
        except psycopg2.Error as e:
            raise CatalogError(f"Failed to read {what}: {e}") from e

    def schema_exists(self, name: str) -> bool:
        rows = self._fetch(
            "SELECT 1 FROM information_schema.schemata WHERE schema_name = %s",
            (name,),
            f"schema '{name}'",
        )
        return len(rows) > 0

    def list_schemas(self) -> list[SchemaInfo]:
        """List tenant schemas, excluding system and temporary schemas."""
        rows = self._fetch(
            """
            SELECT schema_name
            FROM information_schema.schemata
            WHERE schema_name NOT IN %s
              AND schema_name NOT LIKE 'pg\\_temp\\_%%'
              AND schema_name NOT LIKE 'pg\\_toast\\_temp\\_%%'
            ORDER BY schema_name
            """,
            (self.SYSTEM_SCHEMAS,),
            "schema list",
        )
        return [SchemaInfo(name=row["schema_name"]) for row in rows]

    def list_tables(self, schema: str) -> list[str]:
        """List base tables in schema. Views are not included."""
        rows = self._fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """,
            (schema,),
            f"tables of schema '{schema}'",
        )
        return [row["table_name"] for row in rows]

    def describe_columns(self, schema: str, table: str) -> list[ColumnDescriptor]:
        """Fetch columns ordered by physical position."""
        rows = self._fetch(
            """
            SELECT column_name, data_type, character_maximum_length,
                   is_nullable, column_default
            FROM information_schema.columns
            WHERE table_schema = %s AND table_name = %s
            ORDER BY ordinal_position
            """,
            (schema, table),
            f"columns of '{schema}.{table}'",
        )
        return [ColumnDescriptor.from_row(row) for row in rows]

    def list_constraints(self, schema: str, table: str) -> list[ConstraintDescriptor]:
        rows = self._fetch(
            """
            SELECT constraint_name, constraint_type
            FROM information_schema.table_constraints
            WHERE table_schema = %s AND table_name = %s
            ORDER BY constraint_name
            """,
            (schema, table),
            f"constraints of '{schema}.{table}'",
        )
        return [ConstraintDescriptor.from_row(row) for row in rows]
