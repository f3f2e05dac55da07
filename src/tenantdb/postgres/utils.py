"""Wiring helpers shared by the CLI and the API server."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tenantdb.config import Config
from tenantdb.databases import DatabaseManager
from tenantdb.oplog import FileOperationLog, OperationLogStore
from tenantdb.postgres.client import ConnectionPool, PostgresClient
from tenantdb.schema.catalog import CatalogReader
from tenantdb.schema.exporter import Exporter
from tenantdb.schema.importer import Importer
from tenantdb.schema.migrator import Migrator


@dataclass
class Services:
    """Components of one process, all sharing one connection pool."""

    catalog: CatalogReader
    exporter: Exporter
    importer: Importer
    migrator: Migrator
    databases: DatabaseManager
    oplog: OperationLogStore
    pool: Optional[ConnectionPool] = None

    def close(self) -> None:
        if self.pool is not None:
            self.pool.close()


def build_config_and_validate(
    *,
    database_url: Optional[str] = None,
    profile: Optional[str] = None,
) -> Config:
    """Load config from ~/.tenantdb.cfg/env and validate for DB operations.

    Raises:
        ConfigError: If required configuration is missing.
    """
    config = Config.from_env(database_url=database_url, profile=profile)
    config.validate_for_db_ops()
    return config


def open_pool(config: Config) -> ConnectionPool:
    config.validate_for_db_ops()
    return ConnectionPool(
        config.database_url,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
        sslmode=config.sslmode,
    )


def build_services(
    pool: ConnectionPool, oplog: Optional[OperationLogStore] = None, log_file: Optional[str] = None
) -> Services:
    """Build every component on top of pool."""
    client = PostgresClient(pool)
    catalog = CatalogReader(client)
    exporter = Exporter(client, catalog)
    importer = Importer(pool)
    return Services(
        catalog=catalog,
        exporter=exporter,
        importer=importer,
        migrator=Migrator(exporter, importer),
        databases=DatabaseManager(client, catalog),
        oplog=oplog or FileOperationLog(Path(log_file or "database-operations.log")),
        pool=pool,
    )
