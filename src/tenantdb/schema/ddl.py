"""Generate SQL statements from column descriptors.

Pure functions: no connection is needed, so statements can be checked in
isolation. Identifiers are validated and quoted; values are never inlined,
only positional placeholders are emitted.
"""

import re

from tenantdb.exceptions import CodegenError
from tenantdb.schema.identifiers import qualified_name, quote_identifier
from tenantdb.schema.models import ColumnDescriptor, TableSnapshot

__all__ = [
    "column_definition",
    "create_table_sql",
    "drop_table_sql",
    "insert_sql",
    "select_all_sql",
]

_DATA_TYPE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_ ]*$")

# information_schema reports these without the element or enum type,
# so they cannot be recreated from the descriptor alone.
_UNSUPPORTED_TYPES = {"ARRAY", "USER-DEFINED"}


def _data_type(col: ColumnDescriptor) -> str:
    if not isinstance(col.data_type, str):
        raise CodegenError(f"Data type of column '{col.name}' must be a string")
    data_type = col.data_type.strip()
    if data_type.upper() in _UNSUPPORTED_TYPES or not _DATA_TYPE_RE.match(data_type):
        raise CodegenError(
            f"Unsupported data type {col.data_type!r} for column '{col.name}'"
        )
    return data_type


def _default_expression(col: ColumnDescriptor) -> str:
    """Return the default expression, rejecting anything that could end the statement.

    Outside quoted literals and identifiers the expression may not contain
    ';', '--' or '/*', and quotes and parentheses must balance. Backslashes and
    dollar signs are not accepted at all.
    """
    expr = col.default
    if not isinstance(expr, str):
        raise CodegenError(f"Default of column '{col.name}' must be a string")
    if "\\" in expr or "$" in expr:
        raise CodegenError(f"Unsafe default {expr!r} for column '{col.name}'")

    quote = None
    depth = 0
    i = 0
    while i < len(expr):
        ch = expr[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";" or expr.startswith(("--", "/*"), i):
            break
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                break
        i += 1

    if i < len(expr) or quote or depth:
        raise CodegenError(f"Unsafe default {expr!r} for column '{col.name}'")
    return expr


def column_definition(col: ColumnDescriptor) -> str:
    """Render one column: "name" type[(len)] [NOT NULL] [DEFAULT expr]."""
    col_def = f"{quote_identifier(col.name, 'column')} {_data_type(col)}"
    if col.character_maximum_length:
        col_def += f"({int(col.character_maximum_length)})"
    if not col.nullable:
        col_def += " NOT NULL"
    if col.default:
        col_def += f" DEFAULT {_default_expression(col)}"
    return col_def


def create_table_sql(schema: str, table: TableSnapshot) -> str:
    """Generate CREATE TABLE without constraints, columns in snapshot order."""
    if not table.columns:
        raise CodegenError(f"Table '{table.name}' has no columns")
    columns_sql = ", ".join(column_definition(col) for col in table.columns)
    return f"CREATE TABLE {qualified_name(schema, table.name)} ({columns_sql})"


def drop_table_sql(schema: str, table_name: str) -> str:
    return f"DROP TABLE IF EXISTS {qualified_name(schema, table_name)} CASCADE"


def insert_sql(schema: str, table: TableSnapshot) -> str:
    """Generate a positional INSERT for every column of table."""
    if not table.columns:
        raise CodegenError(f"Table '{table.name}' has no columns")
    names = ", ".join(quote_identifier(col.name, "column") for col in table.columns)
    placeholders = ", ".join(["%s"] * len(table.columns))
    return (
        f"INSERT INTO {qualified_name(schema, table.name)} ({names}) "
        f"VALUES ({placeholders})"
    )


def select_all_sql(schema: str, table_name: str) -> str:
    return f"SELECT * FROM {qualified_name(schema, table_name)}"
