"""
WHERE-key operator parsing and clause keyword normalization.

A WHERE key is either a bare column (``"status"``) or a column followed by
whitespace and a comparison operator (``"age >="``, ``"name LIKE"``,
``"deleted_at IS NOT"``).
"""

import re
from typing import Tuple

from tablewright.exceptions import InvalidWhereOperatorError

from .identifier import validate_identifier

WHERE_OPERATORS: Tuple[str, ...] = (
    "=",
    ">",
    "<",
    ">=",
    "<=",
    "<>",
    "!=",
    "BETWEEN",
    "LIKE",
    "IN",
    "IS",
    "IS NOT",
)

DEFAULT_OPERATOR = "="

# Symbol runs are matched greedily so "<=" is one token, never "<" then "=".
# Keyword alternatives list the longer forms first.
_WHERE_KEY_PATTERN = re.compile(
    r"^`?(?P<column>[^`]+?)`?\s+"
    r"(?P<operator>[<>=!]+|is\s+not|not\s+\w+|between|like|in|is)$",
    re.IGNORECASE,
)


def parse_where_operator(key: str) -> Tuple[str, str]:
    """
    Split a WHERE key into a validated column name and canonical operator.

    Args:
        key: ``"column"`` or ``"column OPERATOR"``

    Returns:
        Tuple of (column, operator); operator defaults to ``"="``

    Raises:
        InvalidWhereOperatorError: If an operator token is present but is not
            one of WHERE_OPERATORS
        InvalidSchemaSyntaxError: If the column part is not a safe identifier

    Examples:
        >>> parse_where_operator("age >=")
        ('age', '>=')
        >>> parse_where_operator("name")
        ('name', '=')
        >>> parse_where_operator("deleted_at is  not")
        ('deleted_at', 'IS NOT')
    """
    match = _WHERE_KEY_PATTERN.match(key.strip()) if isinstance(key, str) else None
    if not match:
        return validate_identifier(key), DEFAULT_OPERATOR

    operator = " ".join(match.group("operator").upper().split())
    if operator not in WHERE_OPERATORS:
        raise InvalidWhereOperatorError(operator, WHERE_OPERATORS)

    return validate_identifier(match.group("column")), operator


def validate_conjunction(conjunction: str) -> str:
    """
    Normalize a WHERE conjunction to ``"AND"`` or ``"OR"``.

    Anything other than and/or (case-insensitive) falls back to ``"AND"``.
    """
    if isinstance(conjunction, str) and conjunction.strip().upper() in ("AND", "OR"):
        return conjunction.strip().upper()
    return "AND"


def normalize_direction(direction: str) -> str:
    """Normalize an ORDER BY direction to ``"ASC"`` or ``"DESC"`` (default ASC)."""
    if isinstance(direction, str) and direction.strip().upper() == "DESC":
        return "DESC"
    return "ASC"
