"""Create and initialize tenant schemas and manage their users table."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from tenantdb.exceptions import SchemaAlreadyExistsError, SchemaNotFoundError
from tenantdb.postgres.client import PostgresClient
from tenantdb.schema.catalog import CatalogReader
from tenantdb.schema.identifiers import (
    MAX_IDENTIFIER_LENGTH,
    quote_identifier,
    validate_identifier,
)

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    success: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message}


class DatabaseManager:
    """Tenant schema lifecycle: create, initialize, and the users table."""

    _USERS_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS {schema}.users (
            id SERIAL PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            email VARCHAR(100) UNIQUE NOT NULL,
            age INTEGER CHECK (age > 0 AND age < 150),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """

    _USERS_INDEX_SQL = (
        "CREATE INDEX IF NOT EXISTS {index} ON {schema}.users (email)"
    )

    def __init__(self, client: PostgresClient, catalog: CatalogReader) -> None:
        self._client = client
        self._catalog = catalog

    def _users_statements(self, name: str) -> tuple[str, str]:
        schema = quote_identifier(name, "schema")
        # Identifiers are ASCII, so slicing keeps the index name within the byte limit.
        index_name = f"idx_{name}_users_email"[:MAX_IDENTIFIER_LENGTH]
        index = quote_identifier(index_name, "index")
        return (
            self._USERS_TABLE_SQL.format(schema=schema),
            self._USERS_INDEX_SQL.format(index=index, schema=schema),
        )

    def create_database(self, name: str) -> OperationResult:
        """Create a new schema. Does not create any tables."""
        schema = quote_identifier(name, "schema")
        # Fail before CREATE SCHEMA if the schema could not be initialized.
        self._users_statements(name)
        if self._catalog.schema_exists(name):
            raise SchemaAlreadyExistsError(name)

        self._client.execute(f"CREATE SCHEMA {schema}")
        logger.info("Created schema '%s'", name)
        return OperationResult(True, f"Schema '{name}' created successfully.")

    def initialize_database(self, name: str) -> OperationResult:
        """Create the users table and its email index if missing."""
        table_sql, index_sql = self._users_statements(name)
        self._client.execute(table_sql)
        self._client.execute(index_sql)
        logger.info("Initialized schema '%s'", name)
        return OperationResult(True, f"Schema '{name}' initialized successfully")

    def _require_schema(self, name: str) -> str:
        validate_identifier(name, "schema")
        if not self._catalog.schema_exists(name):
            raise SchemaNotFoundError(name)
        return quote_identifier(name, "schema")

    def list_users(self, name: str) -> list[dict[str, Any]]:
        schema = self._require_schema(name)
        return self._client.fetchall(f"SELECT * FROM {schema}.users ORDER BY id")

    def create_user(
        self, name: str, user_name: str, email: str, age: Optional[int] = None
    ) -> dict[str, Any]:
        """Insert a user and return the stored row."""
        schema = self._require_schema(name)
        rows = self._client.fetchall(
            f"INSERT INTO {schema}.users (name, email, age) "
            "VALUES (%s, %s, %s) RETURNING *",
            (user_name, email, age),
        )
        return rows[0]
