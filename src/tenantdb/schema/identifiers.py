"""Validation and quoting of identifiers embedded in generated SQL.

Identifiers cannot be bound as statement parameters, so every schema, table
and column name is checked here before it is interpolated.
"""

import re

from tenantdb.exceptions import InvalidIdentifierError

__all__ = [
    "MAX_IDENTIFIER_LENGTH",
    "is_valid_identifier",
    "validate_identifier",
    "quote_identifier",
    "qualified_name",
]

MAX_IDENTIFIER_LENGTH = 63

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_valid_identifier(name: object) -> bool:
    """Return True if name is usable as an identifier."""
    if not isinstance(name, str) or not name:
        return False
    if len(name.encode("utf-8")) > MAX_IDENTIFIER_LENGTH:
        return False
    return _IDENTIFIER_RE.match(name) is not None


def validate_identifier(name: object, kind: str = "schema") -> str:
    """Return name unchanged, or raise InvalidIdentifierError.

    Args:
        name: Operator- or catalog-supplied name.
        kind: What the name identifies, used in the error message.
    """
    if not isinstance(name, str) or not name:
        raise InvalidIdentifierError(name, f"Invalid {kind} name: name is required.")

    if len(name.encode("utf-8")) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            name,
            f"Invalid {kind} name: must be {MAX_IDENTIFIER_LENGTH} characters or less.",
        )

    if not _IDENTIFIER_RE.match(name):
        raise InvalidIdentifierError(
            name,
            f"Invalid {kind} name {name!r}. Use only alphanumeric characters and "
            "underscores, starting with a letter or underscore.",
        )

    return name


def quote_identifier(name: object, kind: str = "identifier") -> str:
    """Validate name and return it double-quoted."""
    return f'"{validate_identifier(name, kind)}"'


def qualified_name(schema: str, table: str) -> str:
    """Return "schema"."table" with both parts validated."""
    return f"{quote_identifier(schema, 'schema')}.{quote_identifier(table, 'table')}"
