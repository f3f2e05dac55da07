"""Schema introspection, export, import and migration."""

from tenantdb.schema.catalog import CatalogReader
from tenantdb.schema.exporter import Exporter
from tenantdb.schema.identifiers import (
    is_valid_identifier,
    quote_identifier,
    validate_identifier,
)
from tenantdb.schema.importer import Importer
from tenantdb.schema.migrator import Migrator
from tenantdb.schema.models import (
    ColumnDescriptor,
    ConstraintDescriptor,
    ExportDocument,
    MigrationResult,
    SchemaInfo,
    TableSnapshot,
)

__all__ = [
    "CatalogReader",
    "ColumnDescriptor",
    "ConstraintDescriptor",
    "ExportDocument",
    "Exporter",
    "Importer",
    "MigrationResult",
    "Migrator",
    "SchemaInfo",
    "TableSnapshot",
    "is_valid_identifier",
    "quote_identifier",
    "validate_identifier",
]
