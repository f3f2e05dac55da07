"""tenantdb: schema-per-tenant PostgreSQL administration."""

__version__ = "0.1.0"
