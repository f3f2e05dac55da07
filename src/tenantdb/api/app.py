"""FastAPI application exposing tenant schema administration."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

import psycopg2
from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from tenantdb.api.auth import ApiKeyRegistry, build_registry
from tenantdb.config import Config
from tenantdb.exceptions import (
    AuthenticationError,
    CatalogError,
    CodegenError,
    ConfigError,
    DocumentLoadError,
    ImportFailureError,
    InvalidIdentifierError,
    SchemaAlreadyExistsError,
    SchemaNotFoundError,
    TenantDbError,
)
from tenantdb.oplog import (
    FileOperationLog,
    log_database_access,
    log_database_creation,
    log_database_migration,
    log_user_operation,
)
from tenantdb.postgres.utils import Services, build_services, open_pool
from tenantdb.schema.identifiers import validate_identifier
from tenantdb.schema.models import format_timestamp, utc_now

logger = logging.getLogger(__name__)

# Checked in order, so subclasses come before their bases.
ERROR_RESPONSES: list[tuple[type, int, str]] = [
    (InvalidIdentifierError, 400, "Invalid identifier"),
    (SchemaAlreadyExistsError, 400, "Schema already exists"),
    (DocumentLoadError, 400, "Invalid export document"),
    (CodegenError, 400, "Unsupported table definition"),
    (SchemaNotFoundError, 404, "Schema not found"),
    (CatalogError, 500, "Catalog error"),
    (ImportFailureError, 500, "Import failed"),
    (ConfigError, 500, "Configuration error"),
]


def error_response(exc: Exception) -> JSONResponse:
    """Map an exception to a structured {error, message} response."""
    if isinstance(exc, AuthenticationError):
        return JSONResponse(
            status_code=401, content={"error": exc.error, "message": str(exc)}
        )
    for exc_type, status_code, label in ERROR_RESPONSES:
        if isinstance(exc, exc_type):
            return JSONResponse(
                status_code=status_code, content={"error": label, "message": str(exc)}
            )
    return JSONResponse(
        status_code=500,
        content={"error": "Something went wrong!", "message": str(exc)},
    )


class CreateDatabaseRequest(BaseModel):
    name: Optional[str] = None


class MigrateRequest(BaseModel):
    sourceDatabase: Optional[str] = None
    targetDatabase: Optional[str] = None


class CreateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None


def create_app(
    config: Optional[Config] = None,
    services: Optional[Services] = None,
    registry: Optional[ApiKeyRegistry] = None,
) -> FastAPI:
    """Build the API.

    When services is not given, a connection pool is opened from config on
    startup and closed on shutdown.
    """
    config = config or Config.from_env()
    registry = registry or build_registry(config.api_key)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if app.state.services is None:
            pool = open_pool(config)
            owned = build_services(pool, FileOperationLog(Path(config.log_file)))
            app.state.services = owned
        logger.info("tenantdb API started")
        yield
        if owned is not None:
            owned.close()
            app.state.services = None
        logger.info("tenantdb API stopped")

    app = FastAPI(
        title="tenantdb",
        description="Schema-per-tenant database administration API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.debug("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(TenantDbError)
    async def handle_tenantdb_error(request: Request, exc: TenantDbError):
        return error_response(exc)

    @app.exception_handler(psycopg2.IntegrityError)
    async def handle_integrity_error(request: Request, exc: psycopg2.IntegrityError):
        return JSONResponse(
            status_code=400, content={"error": "Constraint violation", "message": str(exc)}
        )

    @app.exception_handler(psycopg2.Error)
    async def handle_database_error(request: Request, exc: psycopg2.Error):
        logger.error("Database error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500, content={"error": "Database error", "message": str(exc)}
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400, content={"error": "Invalid request", "message": str(exc)}
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "message": str(exc.detail)},
        )

    def get_services(request: Request) -> Services:
        services = request.app.state.services
        if services is None:
            raise ConfigError("Database services are not initialized")
        return services

    def require_user(
        request: Request, x_api_key: Optional[str] = Header(default=None)
    ) -> str:
        return request.app.state.registry.authenticate(x_api_key)

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        return {
            "status": "OK",
            "message": "Server is running",
            "timestamp": format_timestamp(utc_now()),
        }

    @app.get("/api/databases")
    def list_databases(
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> list[dict[str, Any]]:
        try:
            schemas = services.catalog.list_schemas()
        except (TenantDbError, psycopg2.Error) as e:
            log_database_access(services.oplog, "all", user_id, False, e)
            raise
        log_database_access(services.oplog, "all", user_id, True)
        return [s.to_dict() for s in schemas]

    @app.post("/api/databases", status_code=201)
    def create_database(
        body: CreateDatabaseRequest,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ):
        if not body.name:
            return JSONResponse(
                status_code=400,
                content={"error": "Schema name is required", "message": "Provide 'name'"},
            )
        try:
            result = services.databases.create_database(body.name)
            services.databases.initialize_database(body.name)
        except (TenantDbError, psycopg2.Error) as e:
            log_database_creation(services.oplog, body.name, user_id, False, e)
            status = 500 if isinstance(e, CatalogError) else 400
            return JSONResponse(
                status_code=status,
                content={"error": "Schema creation failed", "message": str(e)},
            )
        log_database_creation(services.oplog, body.name, user_id, True)
        return {**result.to_dict(), "database": body.name}

    @app.get("/api/databases/{name}/exists")
    def database_exists(
        name: str,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict[str, Any]:
        return {"database": name, "exists": services.catalog.schema_exists(name)}

    @app.post("/api/databases/{name}/initialize")
    def initialize_database(
        name: str,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict[str, Any]:
        validate_identifier(name, "schema")
        if not services.catalog.schema_exists(name):
            raise SchemaNotFoundError(name)
        return services.databases.initialize_database(name).to_dict()

    @app.get("/api/databases/{name}/export")
    def export_database(
        name: str,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict[str, Any]:
        try:
            document = services.exporter.export(name)
        except (TenantDbError, psycopg2.Error) as e:
            log_database_access(services.oplog, name, user_id, False, e)
            raise
        log_database_access(services.oplog, name, user_id, True)
        return document.to_dict()

    @app.post("/api/databases/migrate")
    def migrate_database(
        body: MigrateRequest,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ):
        source, target = body.sourceDatabase, body.targetDatabase
        if not source or not target:
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Source and target required",
                    "message": "Provide 'sourceDatabase' and 'targetDatabase'",
                },
            )
        try:
            validate_identifier(source, "schema")
            validate_identifier(target, "schema")
            if not services.catalog.schema_exists(source):
                raise SchemaNotFoundError(source, "Source schema not found")
            if not services.catalog.schema_exists(target):
                raise SchemaNotFoundError(target, "Target schema not found")
            result = services.migrator.migrate(source, target)
        except (TenantDbError, psycopg2.Error) as e:
            log_database_migration(
                services.oplog, source, target, user_id, False, {"error": str(e)}
            )
            raise
        details = {
            "tablesCount": result.tables_count,
            "timestamp": format_timestamp(result.timestamp),
        }
        log_database_migration(services.oplog, source, target, user_id, True, details)
        return result.to_dict()

    @app.get("/api/logs")
    def read_logs(
        limit: int = 100,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> dict[str, Any]:
        logs = services.oplog.read(limit if limit > 0 else 100)
        return {"logs": logs, "count": len(logs)}

    @app.get("/api/databases/{name}/users")
    def list_users(
        name: str,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ) -> list[dict[str, Any]]:
        return services.databases.list_users(name)

    @app.post("/api/databases/{name}/users", status_code=201)
    def create_user(
        name: str,
        body: CreateUserRequest,
        user_id: str = Depends(require_user),
        services: Services = Depends(get_services),
    ):
        if not body.name or not body.email:
            return JSONResponse(
                status_code=400,
                content={
                    "error": "Name and email required",
                    "message": "Provide 'name' and 'email'",
                },
            )
        row = services.databases.create_user(
            name, body.name, body.email, body.age or None
        )
        log_user_operation(
            services.oplog,
            "create",
            {"database": name, "userId": row.get("id"), "email": body.email},
            user_id,
        )
        return row

    return app
