"""Command-line interface for tenantdb."""

import argparse
import logging
import sys
from pathlib import Path

from tenantdb.config import Config
from tenantdb.exceptions import ConfigError
from tenantdb.oplog import (
    FileOperationLog,
    log_database_creation,
    log_database_import,
    log_database_migration,
)
from tenantdb.postgres.utils import build_config_and_validate, build_services, open_pool
from tenantdb.schema.exporter import export_document_json, write_document
from tenantdb.schema.loader import load_document

CLI_USER = "cli"


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(
        prog="tenantdb",
        description="Schema-per-tenant PostgreSQL administration",
    )
    parser.add_argument("--database-url", help="PostgreSQL connection URL")
    parser.add_argument("--profile", help="Profile in ~/.tenantdb.cfg")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List tenant schemas")

    create_parser = subparsers.add_parser("create", help="Create and initialize a schema")
    create_parser.add_argument("name")

    exists_parser = subparsers.add_parser("exists", help="Check whether a schema exists")
    exists_parser.add_argument("name")

    export_parser = subparsers.add_parser("export", help="Export a schema")
    export_parser.add_argument("name")
    export_parser.add_argument(
        "--output",
        type=Path,
        help="Output file path, .json or .yaml (default: stdout as JSON)",
    )

    import_parser = subparsers.add_parser("import", help="Import an export file")
    import_parser.add_argument("target", help="Existing target schema")
    import_parser.add_argument("path", type=Path, help="Export file (.json or .yaml)")

    migrate_parser = subparsers.add_parser("migrate", help="Copy one schema into another")
    migrate_parser.add_argument("source")
    migrate_parser.add_argument("target")

    logs_parser = subparsers.add_parser("logs", help="Show the operation log")
    logs_parser.add_argument("--limit", type=int, default=100)

    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host")
    serve_parser.add_argument("--port", type=int)

    args = parser.parse_args(argv)

    commands = {
        "list": cmd_list,
        "create": cmd_create,
        "exists": cmd_exists,
        "export": cmd_export,
        "import": cmd_import,
        "migrate": cmd_migrate,
        "logs": cmd_logs,
        "serve": cmd_serve,
    }
    return commands[args.command](args)


def _open_services(args: argparse.Namespace):
    config = build_config_and_validate(
        database_url=getattr(args, "database_url", None),
        profile=getattr(args, "profile", None),
    )
    return build_services(open_pool(config), FileOperationLog(Path(config.log_file)))


def cmd_list(args: argparse.Namespace) -> int:
    """List tenant schemas."""
    try:
        services = _open_services(args)
        try:
            schemas = services.catalog.list_schemas()
        finally:
            services.close()

        if not schemas:
            print("No schemas found")
            return 0
        print(f"Schemas ({len(schemas)}):")
        for info in schemas:
            print(f"  - {info.name}")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"List error: {e}", file=sys.stderr)
        return 1


def cmd_create(args: argparse.Namespace) -> int:
    """Create a schema and its users table."""
    try:
        services = _open_services(args)
        try:
            result = services.databases.create_database(args.name)
            services.databases.initialize_database(args.name)
        except Exception as e:
            log_database_creation(services.oplog, args.name, CLI_USER, False, e)
            raise
        finally:
            services.close()

        log_database_creation(services.oplog, args.name, CLI_USER, True)
        print(result.message)
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Create error: {e}", file=sys.stderr)
        return 1


def cmd_exists(args: argparse.Namespace) -> int:
    """Exit 0 if the schema exists, 1 otherwise."""
    try:
        services = _open_services(args)
        try:
            exists = services.catalog.schema_exists(args.name)
        finally:
            services.close()

        print(f"{args.name}: {'exists' if exists else 'not found'}")
        return 0 if exists else 1
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Exists error: {e}", file=sys.stderr)
        return 1


def cmd_export(args: argparse.Namespace) -> int:
    """Export a schema to a file or stdout."""
    try:
        services = _open_services(args)
        try:
            document = services.exporter.export(args.name)
        finally:
            services.close()

        if args.output:
            path = write_document(document, args.output)
            print(f"Exported {len(document.tables)} tables to {path}")
        else:
            print(export_document_json(document))
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Export error: {e}", file=sys.stderr)
        return 1


def cmd_import(args: argparse.Namespace) -> int:
    """Import an export file into an existing schema."""
    try:
        document = load_document(args.path)
        services = _open_services(args)
        try:
            result = services.importer.import_document(args.target, document)
        except Exception as e:
            log_database_import(
                services.oplog, args.target, CLI_USER, False, {"error": str(e)}
            )
            raise
        finally:
            services.close()

        log_database_import(
            services.oplog,
            args.target,
            CLI_USER,
            True,
            {"source": document.database, "tablesCount": len(document.tables)},
        )
        print(result.message)
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Import error: {e}", file=sys.stderr)
        return 1


def cmd_migrate(args: argparse.Namespace) -> int:
    """Export source and import it into target."""
    try:
        services = _open_services(args)
        try:
            result = services.migrator.migrate(args.source, args.target)
        except Exception as e:
            log_database_migration(
                services.oplog, args.source, args.target, CLI_USER, False, {"error": str(e)}
            )
            raise
        finally:
            services.close()

        log_database_migration(
            services.oplog,
            args.source,
            args.target,
            CLI_USER,
            True,
            {"tablesCount": result.tables_count},
        )
        print(result.message)
        print(f"Tables: {result.tables_count}")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Migrate error: {e}", file=sys.stderr)
        return 1


def cmd_logs(args: argparse.Namespace) -> int:
    """Print the newest operation log entries."""
    try:
        config = Config.from_env(profile=getattr(args, "profile", None))
        entries = FileOperationLog(Path(config.log_file)).read(args.limit)
        if not entries:
            print("No log entries")
            return 0
        for entry in entries:
            print(
                f"{entry.get('timestamp')} {entry.get('level')} "
                f"[{entry.get('userId')}] {entry.get('action')} {entry.get('details')}"
            )
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the REST API with uvicorn."""
    import uvicorn

    from tenantdb.api.app import create_app

    try:
        config = Config.from_env(
            database_url=getattr(args, "database_url", None),
            host=args.host,
            port=args.port,
            profile=getattr(args, "profile", None),
        )
        config.validate_for_db_ops()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level="info")
    return 0


if __name__ == "__main__":
    sys.exit(main())
