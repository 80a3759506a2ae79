"""
SQL parameter binding utilities.

Provides placeholder naming, placeholder/parameter reconciliation and the
value -> bind type mapping used by the statement executor.
"""

import re
from enum import Enum
from typing import Any, Collection, Dict, List, Mapping, Tuple

from tablewright.exceptions import (
    InvalidParameterValueTypeError,
    MissingParametersError,
)

from .identifier import is_valid_identifier

# Same shape SQLAlchemy's text() recognizes: ":name" not preceded by a word
# character, another colon or a backslash, and not followed by a colon.
PLACEHOLDER_PATTERN = re.compile(r"(?<![:\w\\]):(\w+)(?!:)")


class ParamType(str, Enum):
    """Storage type a value is bound as."""

    BOOL = "bool"
    INT = "int"
    STRING = "string"
    NULL = "null"


def infer_parameter_type(name: str, value: Any) -> ParamType:
    """
    Map a runtime value to its bind type.

    bool -> BOOL, int -> INT, float/str -> STRING, None -> NULL.

    Raises:
        InvalidParameterValueTypeError: For any other type (lists, dicts,
            objects).
    """
    # bool is a subclass of int, so it has to be checked first
    if isinstance(value, bool):
        return ParamType.BOOL
    if isinstance(value, int):
        return ParamType.INT
    if isinstance(value, (float, str)):
        return ParamType.STRING
    if value is None:
        return ParamType.NULL
    raise InvalidParameterValueTypeError(name, value)


def find_placeholders(sql: str) -> List[str]:
    """Return placeholder names in order of first appearance, without duplicates."""
    seen: Dict[str, None] = {}
    for name in PLACEHOLDER_PATTERN.findall(sql):
        seen.setdefault(name, None)
    return list(seen)


def reconcile_parameters(sql: str, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Keep only the candidate parameters the SQL text actually references.

    Candidates whose placeholder does not appear in ``sql`` are dropped without
    error. A leading colon on a candidate key is ignored.

    Args:
        sql: Assembled SQL text containing ``:name`` placeholders
        params: Candidate parameter map

    Returns:
        The bound parameter map, keyed without colons

    Raises:
        MissingParametersError: If any placeholder has no candidate

    Examples:
        >>> reconcile_parameters("SELECT * FROM t WHERE id = :id", {"id": 5, "unused": 9})
        {'id': 5}
    """
    required = find_placeholders(sql)
    remaining = set(required)
    bound: Dict[str, Any] = {}

    for key, value in params.items():
        name = str(key).lstrip(":")
        if name not in remaining and name not in bound:
            continue
        if not is_valid_identifier(name):
            continue
        remaining.discard(name)
        bound[name] = value

    if remaining:
        raise MissingParametersError(
            [name for name in required if name in remaining], query=sql
        )
    return bound


def parameter_name(column: str) -> str:
    """Derive a placeholder-safe parameter name from a validated column name."""
    return re.sub(r"\s+", "_", column.strip())


def claim_parameter_name(
    column: str,
    taken: Collection[str],
    columns: Collection[str] = (),
    prefix: str = "where",
) -> str:
    """
    Pick a parameter name for ``column`` that collides with nothing in use.

    The plain column-derived name is used when free. Otherwise the name is
    prefixed (``where_<column>``) and, if that still collides with a claimed
    parameter or a real column of the table, suffixed with a counter
    (``where_<column>_1``, ``where_<column>_2``, ...).

    Args:
        column: Validated column name
        taken: Parameter names already claimed by this statement
        columns: Real column names of the table
        prefix: Prefix naming the clause that claims the parameter

    Examples:
        >>> claim_parameter_name("age", taken=set())
        'age'
        >>> claim_parameter_name("age", taken={"age"})
        'where_age'
        >>> claim_parameter_name("age", taken={"age"}, columns={"where_age"})
        'where_age_1'
    """
    base = parameter_name(column)
    if base not in taken:
        return base

    candidate = f"{prefix}_{base}"
    counter = 0
    while candidate in taken or candidate in columns:
        counter += 1
        candidate = f"{prefix}_{base}_{counter}"
    return candidate


def build_indexed_params(
    rows: List[Mapping[str, Any]], columns: List[str]
) -> Tuple[List[List[str]], Dict[str, Any]]:
    """
    Build per-row parameter names for a batched statement.

    Each row's values are keyed ``<column>_<row index>`` so one statement can
    carry every row without binding collisions. Columns whose derived names
    coincide (``first name`` and ``first_name``) fall back to a ``row_``
    prefixed name for the later column.

    Returns:
        Tuple of (list of placeholder lists per row, flat parameter map)

    Examples:
        >>> groups, params = build_indexed_params([{"a": 1, "b": 2}, {"a": 3, "b": 4}], ["a", "b"])
        >>> groups
        [[':a_0', ':b_0'], [':a_1', ':b_1']]
        >>> params
        {'a_0': 1, 'b_0': 2, 'a_1': 3, 'b_1': 4}
    """
    placeholder_groups: List[List[str]] = []
    params: Dict[str, Any] = {}
    for index, row in enumerate(rows):
        group = []
        for column in columns:
            name = claim_parameter_name(f"{column}_{index}", params, prefix="row")
            params[name] = row[column]
            group.append(f":{name}")
        placeholder_groups.append(group)
    return placeholder_groups, params
