"""REST API for tenant schema administration."""

from tenantdb.api.app import create_app
from tenantdb.api.auth import ApiKeyRegistry, build_registry

__all__ = ["ApiKeyRegistry", "build_registry", "create_app"]
