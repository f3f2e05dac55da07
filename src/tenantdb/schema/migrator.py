"""Migrate one schema into another: export, then import."""

import logging

from tenantdb.schema.exporter import Exporter
from tenantdb.schema.importer import Importer
from tenantdb.schema.models import MigrationResult

logger = logging.getLogger(__name__)


class Migrator:
    """Runs Exporter then Importer, connected only by the in-memory document.

    No partial recovery: a failed import leaves the source untouched and the
    target rolled back.
    """

    def __init__(self, exporter: Exporter, importer: Importer) -> None:
        self._exporter = exporter
        self._importer = importer

    def migrate(self, source: str, target: str) -> MigrationResult:
        document = self._exporter.export(source)
        self._importer.import_document(target, document)

        logger.info(
            "Migrated '%s' to '%s' (%d tables)", source, target, len(document.tables)
        )
        return MigrationResult(
            success=True,
            message=f"Successfully migrated from '{source}' to '{target}'",
            tables_count=len(document.tables),
            timestamp=document.timestamp,
        )
