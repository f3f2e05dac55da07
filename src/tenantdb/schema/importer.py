"""Import an ExportDocument into a target schema as one transaction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import psycopg2

from tenantdb.exceptions import ImportFailureError, SchemaNotFoundError
from tenantdb.postgres.client import ConnectionPool
from tenantdb.schema.ddl import create_table_sql, drop_table_sql, insert_sql
from tenantdb.schema.identifiers import validate_identifier
from tenantdb.schema.models import ExportDocument, MigrationResult, TableSnapshot
from tenantdb.schema.values import bind_value

__all__ = ["TableImport", "plan_import", "Importer"]

logger = logging.getLogger(__name__)

_SCHEMA_EXISTS_SQL = "SELECT 1 FROM information_schema.schemata WHERE schema_name = %s"


@dataclass(frozen=True)
class TableImport:
    """Statements and bound rows that recreate one table."""

    name: str
    drop_sql: str
    create_sql: str
    insert_sql: str
    rows: list[tuple[Any, ...]] = field(default_factory=list)


def _bind_rows(table: TableSnapshot) -> list[tuple[Any, ...]]:
    return [
        tuple(bind_value(row.get(col.name), col) for col in table.columns)
        for row in table.rows
    ]


def plan_import(target: str, document: ExportDocument) -> list[TableImport]:
    """
    Pure function: build every statement the import will run, in document order.

    Raises InvalidIdentifierError or CodegenError before anything is executed.
    """
    validate_identifier(target, "schema")
    return [
        TableImport(
            name=table.name,
            drop_sql=drop_table_sql(target, table.name),
            create_sql=create_table_sql(target, table),
            insert_sql=insert_sql(target, table),
            rows=_bind_rows(table),
        )
        for table in document.tables
    ]


class Importer:
    """
    Recreates each table of a document in a target schema and loads its rows.

    Existing tables with the same name are dropped (CASCADE) first, so
    importing the same document twice gives the same result. Constraints in
    the document are not replayed. Everything runs on one pooled connection
    inside one transaction; any failure rolls back all of it.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def import_document(self, target: str, document: ExportDocument) -> MigrationResult:
        steps = plan_import(target, document)

        try:
            with self._pool.connection() as conn:
                self._apply(conn, target, steps)
        except psycopg2.Error as exc:
            # Raised by the pool itself, e.g. exhausted or unreachable server.
            logger.warning("No connection for import into '%s': %s", target, exc)
            raise ImportFailureError(
                target, f"Could not acquire a connection for schema '{target}': {exc}"
            ) from exc

        logger.info("Imported %d tables into schema '%s'", len(steps), target)
        return MigrationResult(
            success=True,
            message=f"Schema imported successfully to '{target}'",
        )

    def _apply(self, conn: Any, target: str, steps: list[TableImport]) -> None:
        current = None
        try:
            with conn.cursor() as cursor:
                cursor.execute(_SCHEMA_EXISTS_SQL, (target,))
                if cursor.fetchone() is None:
                    raise SchemaNotFoundError(target)

                for step in steps:
                    current = step.name
                    cursor.execute(step.drop_sql)
                    cursor.execute(step.create_sql)
                    if step.rows:
                        cursor.executemany(step.insert_sql, step.rows)
                    logger.debug(
                        "Imported %s.%s (%d rows)", target, step.name, len(step.rows)
                    )
            conn.commit()
        except psycopg2.Error as exc:
            conn.rollback()
            logger.warning("Import into '%s' rolled back: %s", target, exc)
            where = f" at table '{current}'" if current else ""
            raise ImportFailureError(
                target, f"Import into schema '{target}' failed{where}: {exc}"
            ) from exc
        except Exception:
            conn.rollback()
            logger.warning("Import into '%s' rolled back", target)
            raise
