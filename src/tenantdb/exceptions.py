"""Exception classes for tenantdb."""

from typing import Optional

__all__ = [
    "TenantDbError",
    "InvalidIdentifierError",
    "SchemaNotFoundError",
    "SchemaAlreadyExistsError",
    "CatalogError",
    "ImportFailureError",
    "CodegenError",
    "DocumentLoadError",
    "ConfigError",
    "AuthenticationError",
]


class TenantDbError(Exception):
    """Base exception for tenantdb."""


class InvalidIdentifierError(TenantDbError):
    """Name cannot be used as a schema, table or column identifier."""

    def __init__(self, name: object, message: str):
        self.name = name
        super().__init__(message)


class SchemaNotFoundError(TenantDbError):
    """Schema does not exist."""

    def __init__(self, schema: str, message: Optional[str] = None):
        self.schema = schema
        super().__init__(message or f"Schema '{schema}' not found.")


class SchemaAlreadyExistsError(TenantDbError):
    """Schema already exists."""

    def __init__(self, schema: str):
        self.schema = schema
        super().__init__(f"Schema '{schema}' already exists.")


class CatalogError(TenantDbError):
    """Error querying the database catalog or reading table data."""


class ImportFailureError(TenantDbError):
    """Import into a target schema failed and was rolled back."""

    def __init__(self, schema: str, message: str):
        self.schema = schema
        super().__init__(message)


class CodegenError(TenantDbError):
    """Error generating SQL from column descriptors."""


class DocumentLoadError(TenantDbError):
    """Error loading an export document."""


class ConfigError(TenantDbError):
    """Error in configuration."""


class AuthenticationError(TenantDbError):
    """Missing or invalid API key."""

    def __init__(self, error: str, message: str):
        self.error = error
        super().__init__(message)
