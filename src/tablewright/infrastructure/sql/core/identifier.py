"""
SQL identifier handling utilities.

Every table or column name that reaches SQL text passes through
validate_identifier first; quoting is applied afterwards and never stands in
for validation.
"""

import re
from typing import Any, Optional

from tablewright.exceptions import InvalidSchemaSyntaxError

# Word characters and whitespace only; ASCII so that look-alike unicode
# letters cannot slip through.
_IDENTIFIER_PATTERN = re.compile(r"^[\w\s]+$", re.ASCII)


def validate_identifier(name: Any) -> str:
    """
    Validate and normalize a proposed identifier.

    Args:
        name: The proposed table/column name

    Returns:
        The trimmed identifier

    Raises:
        InvalidSchemaSyntaxError: If the identifier is empty, not a string, or
            contains anything other than word characters and whitespace

    Examples:
        >>> validate_identifier("  user_id ")
        'user_id'
        >>> is_valid_identifier("id`; DROP TABLE users")
        False
    """
    if not isinstance(name, str):
        raise InvalidSchemaSyntaxError(name)

    trimmed = name.strip()
    if not _IDENTIFIER_PATTERN.match(trimmed):
        raise InvalidSchemaSyntaxError(name)
    return trimmed


def is_valid_identifier(name: Any) -> bool:
    """Return True when validate_identifier would accept ``name``."""
    try:
        validate_identifier(name)
    except InvalidSchemaSyntaxError:
        return False
    return True


def quote_identifier(name: str, dialect: str = "mysql") -> str:
    """
    Quote a SQL identifier (table or column name).

    Args:
        name: The identifier to quote
        dialect: Database dialect ("mysql", "postgresql")

    Returns:
        Properly quoted identifier

    Examples:
        >>> quote_identifier("created_at")
        '`created_at`'
        >>> quote_identifier("table", dialect="postgresql")
        '"table"'
    """
    if dialect == "mysql":
        escaped = name.replace("`", "``")
        return f"`{escaped}`"
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def qualify_table(
    table: str, schema: Optional[str] = None, dialect: str = "mysql"
) -> str:
    """
    Create a fully qualified table name with optional schema prefix.

    Examples:
        >>> qualify_table("users")
        '`users`'
        >>> qualify_table("users", schema="app")
        '`app`.`users`'
    """
    quoted_table = quote_identifier(table, dialect)
    if schema:
        return f"{quote_identifier(schema, dialect)}.{quoted_table}"
    return quoted_table
