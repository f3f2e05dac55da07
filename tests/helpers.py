"""Shared test helpers for tenantdb tests.

FakeDatabase is a small in-memory stand-in for PostgreSQL that understands
exactly the statements tenantdb issues. Connections see a private copy of
the state until commit, so rollback behaviour can be asserted.
"""

import copy
import re
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional

import psycopg2

from tenantdb.config import Config
from tenantdb.oplog import InMemoryOperationLog
from tenantdb.postgres.utils import Services, build_services
from tenantdb.schema.models import ColumnDescriptor, ConstraintDescriptor

_QUALIFIED = r'"(?P<schema>\w+)"\."?(?P<table>\w+)"?'
_COLUMN_DEF_RE = re.compile(
    r'^"(?P<name>\w+)" (?P<type>[A-Za-z][A-Za-z0-9_ ]*?)'
    r"(?:\((?P<length>\d+)\))?(?P<notnull> NOT NULL)?(?: DEFAULT (?P<default>.+))?$"
)


def users_table(schema: str) -> dict[str, Any]:
    """Columns and constraints PostgreSQL reports for the initialized users table."""
    return {
        "columns": [
            ColumnDescriptor(
                "id", "integer", None, False, f"nextval('{schema}.users_id_seq'::regclass)"
            ),
            ColumnDescriptor("name", "character varying", 100, False, None),
            ColumnDescriptor("email", "character varying", 100, False, None),
            ColumnDescriptor("age", "integer", None, True, None),
            ColumnDescriptor(
                "created_at", "timestamp without time zone", None, True, "CURRENT_TIMESTAMP"
            ),
            ColumnDescriptor(
                "updated_at", "timestamp without time zone", None, True, "CURRENT_TIMESTAMP"
            ),
        ],
        "rows": [],
        "constraints": [
            ConstraintDescriptor("users_age_check", "CHECK"),
            ConstraintDescriptor("users_email_key", "UNIQUE"),
            ConstraintDescriptor("users_pkey", "PRIMARY KEY"),
        ],
    }


def make_table(
    columns: list[ColumnDescriptor],
    rows: Optional[list[dict]] = None,
    constraints: Optional[list[ConstraintDescriptor]] = None,
) -> dict[str, Any]:
    return {"columns": columns, "rows": rows or [], "constraints": constraints or []}


class FakeDatabase:
    """Committed state: schema name -> table name -> table dict."""

    SYSTEM_SCHEMAS = ["information_schema", "pg_catalog", "pg_toast"]

    def __init__(self) -> None:
        self.schemas: dict[str, dict[str, dict[str, Any]]] = {
            name: {} for name in self.SYSTEM_SCHEMAS
        }
        self.schemas["public"] = {}
        self.fail_on: Optional[str] = None
        self.statements: list[str] = []

    def add_schema(self, name: str, tables: Optional[dict[str, dict]] = None) -> None:
        self.schemas[name] = copy.deepcopy(tables or {})

    def rows(self, schema: str, table: str) -> list[dict]:
        return self.schemas[schema][table]["rows"]


class FakeCursor:
    def __init__(self, connection: "FakeConnection") -> None:
        self._conn = connection
        self._result: list[dict] = []
        self.description = None

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def fetchall(self) -> list[dict]:
        return list(self._result)

    def fetchone(self) -> Optional[dict]:
        return self._result[0] if self._result else None

    def execute(self, sql: str, params: Any = None) -> None:
        statement = " ".join(sql.split())
        self._conn.db.statements.append(statement)
        self._maybe_fail(statement)
        self._result = self._run(statement, params, self._conn.state())

    def executemany(self, sql: str, seq_of_params: Any) -> None:
        statement = " ".join(sql.split())
        self._conn.db.statements.append(statement)
        for params in seq_of_params:
            self._maybe_fail(statement)
            self._run(statement, params, self._conn.state())
        self._result = []

    def _maybe_fail(self, statement: str) -> None:
        fail_on = self._conn.db.fail_on
        if fail_on and fail_on in statement:
            raise psycopg2.DataError(f"injected failure: {fail_on}")

    def _run(self, sql: str, params: Any, state: dict) -> list[dict]:
        if "FROM information_schema.schemata" in sql:
            if "WHERE schema_name = %s" in sql:
                return [{"?column?": 1}] if params[0] in state else []
            excluded = set(params[0])
            return [{"schema_name": n} for n in sorted(state) if n not in excluded]

        if "FROM information_schema.tables" in sql:
            return [{"table_name": t} for t in sorted(state.get(params[0], {}))]

        if "FROM information_schema.columns" in sql:
            table = state.get(params[0], {}).get(params[1])
            return [c.to_dict() for c in table["columns"]] if table else []

        if "FROM information_schema.table_constraints" in sql:
            table = state.get(params[0], {}).get(params[1])
            if not table:
                return []
            return [c.to_dict() for c in sorted(table["constraints"], key=lambda c: c.name)]

        if sql.startswith("CREATE SCHEMA"):
            name = re.match(r'CREATE SCHEMA "(\w+)"', sql).group(1)
            state[name] = {}
            return []

        match = re.match(r'CREATE TABLE IF NOT EXISTS "(\w+)"\.users', sql)
        if match:
            state[match.group(1)].setdefault("users", users_table(match.group(1)))
            return []

        if sql.startswith("CREATE INDEX"):
            return []

        match = re.match(rf"DROP TABLE IF EXISTS {_QUALIFIED} CASCADE", sql)
        if match:
            self._schema(state, match.group("schema")).pop(match.group("table"), None)
            return []

        match = re.match(rf"CREATE TABLE {_QUALIFIED} \((?P<body>.*)\)$", sql)
        if match:
            tables = self._schema(state, match.group("schema"))
            if match.group("table") in tables:
                raise psycopg2.ProgrammingError("relation already exists")
            columns = [_parse_column(d) for d in re.split(r', (?=")', match.group("body"))]
            tables[match.group("table")] = make_table(columns)
            return []

        match = re.match(rf"SELECT \* FROM {_QUALIFIED}(?P<order> ORDER BY id)?", sql)
        if match:
            table = self._table(state, match.group("schema"), match.group("table"))
            rows = [dict(r) for r in table["rows"]]
            if match.group("order"):
                rows.sort(key=lambda r: r["id"])
            return rows

        match = re.match(
            rf"INSERT INTO {_QUALIFIED} \((?P<cols>[^)]*)\) VALUES \([^)]*\)(?P<returning> RETURNING \*)?",
            sql,
        )
        if match:
            table = self._table(state, match.group("schema"), match.group("table"))
            names = [n.strip().strip('"') for n in match.group("cols").split(",")]
            values = [getattr(v, "adapted", v) for v in params]
            row = {col.name: None for col in table["columns"]}
            row.update(dict(zip(names, values)))
            if match.group("returning"):
                row["id"] = len(table["rows"]) + 1
                row["created_at"] = row["updated_at"] = datetime(2024, 5, 1, 10, 20, 30)
            table["rows"].append(row)
            return [dict(row)]

        raise AssertionError(f"FakeCursor cannot run: {sql}")

    def _schema(self, state: dict, schema: str) -> dict:
        if schema not in state:
            raise psycopg2.ProgrammingError(f'schema "{schema}" does not exist')
        return state[schema]

    def _table(self, state: dict, schema: str, table: str) -> dict:
        tables = self._schema(state, schema)
        if table not in tables:
            raise psycopg2.ProgrammingError(f'relation "{schema}.{table}" does not exist')
        return tables[table]


def _parse_column(definition: str) -> ColumnDescriptor:
    match = _COLUMN_DEF_RE.match(definition)
    if not match:
        raise AssertionError(f"Cannot parse column definition: {definition}")
    length = match.group("length")
    return ColumnDescriptor(
        name=match.group("name"),
        data_type=match.group("type"),
        character_maximum_length=int(length) if length else None,
        nullable=match.group("notnull") is None,
        default=match.group("default"),
    )


class FakeConnection:
    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self._work: Optional[dict] = None
        self.commits = 0
        self.rollbacks = 0

    def state(self) -> dict:
        if self._work is None:
            self._work = copy.deepcopy(self.db.schemas)
        return self._work

    def cursor(self, cursor_factory: Any = None) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        if self._work is not None:
            self.db.schemas = self._work
        self._work = None
        self.commits += 1

    def rollback(self) -> None:
        self._work = None
        self.rollbacks += 1


class FakePool:
    """Stands in for ConnectionPool; counts acquisitions and releases."""

    def __init__(self, db: FakeDatabase) -> None:
        self.db = db
        self.acquired = 0
        self.released = 0
        self.connections: list[FakeConnection] = []

    @property
    def in_use(self) -> int:
        return self.acquired - self.released

    @contextmanager
    def connection(self):
        conn = FakeConnection(self.db)
        self.connections.append(conn)
        self.acquired += 1
        try:
            yield conn
        finally:
            self.released += 1

    def close(self) -> None:
        return None


def make_services(db: Optional[FakeDatabase] = None) -> Services:
    """Build real services on top of a FakePool."""
    pool = FakePool(db or FakeDatabase())
    return build_services(pool, InMemoryOperationLog())


def make_test_config(database_url: str = "postgresql://localhost/test") -> Config:
    """Create a Config for tests with sensible defaults."""
    return Config(database_url=database_url, api_key="test-key")


def rows_multiset(rows: list[dict]) -> list[str]:
    """Order-insensitive representation of rows for comparison."""
    return sorted(repr(sorted(row.items())) for row in rows)
