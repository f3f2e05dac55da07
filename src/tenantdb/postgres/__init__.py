"""PostgreSQL connectivity."""

from tenantdb.postgres.client import ConnectionPool, PostgresClient

__all__ = ["ConnectionPool", "PostgresClient"]
