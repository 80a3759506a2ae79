"""
Clause generators for single-table CRUD statements.

Each generator returns a ClauseFragment: the SQL text of one clause and the
parameter map its placeholders refer to. Every column name is checked against
the schema cache before it is placed in SQL text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Collection,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
)

from tablewright.exceptions import (
    EmptyParamsError,
    InvalidColumnError,
    ParameterError,
    PrimaryKeyConflictError,
)

from ..core.operators import (
    normalize_direction,
    parse_where_operator,
    validate_conjunction,
)
from ..core.parameters import claim_parameter_name
from ..dialects.mysql import MySQLDialect

if TYPE_CHECKING:
    from tablewright.infrastructure.schema.cache import SchemaCache

_SEQUENCE_TYPES = (list, tuple)


@dataclass(frozen=True)
class ClauseFragment:
    """SQL text for one clause plus the parameters its placeholders reference."""

    sql: str = ""
    params: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.sql)


class ClauseBuilder:
    """
    Builds VALUES, SET, WHERE, ORDER BY and LIMIT clauses for one table.

    Example:
        >>> builder = ClauseBuilder(schema_cache)
        >>> fragment = builder.where("users", {"status": "active", "age >": 18}, "OR")
        >>> fragment.sql
        'WHERE `status` = :status OR `age` > :age'
    """

    def __init__(self, schema: SchemaCache, dialect: Optional[MySQLDialect] = None):
        self.schema = schema
        self.dialect = dialect or schema.dialect

    def _check_column(self, table: str, column: str) -> str:
        if not self.schema.is_valid_column(table, column):
            raise InvalidColumnError(table=table, column=column)
        return column.strip()

    def values(self, table: str, values: Mapping[str, Any]) -> ClauseFragment:
        """
        Build ``VALUES (:col, ...)`` for a single-row INSERT.

        Generated columns are left out. Empty input yields an empty fragment.
        """
        placeholders: List[str] = []
        params: Dict[str, Any] = {}
        for column, value in values.items():
            column = self._check_column(table, column)
            if self.schema.is_generated_column(table, column):
                continue
            name = claim_parameter_name(column, params, prefix="values")
            placeholders.append(f":{name}")
            params[name] = value

        if not params:
            return ClauseFragment()
        return ClauseFragment(f"VALUES ({', '.join(placeholders)})", params)

    def set(
        self,
        table: str,
        updates: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[ClauseFragment, Dict[str, Any]]:
        """
        Build ``SET `col` = :col, ...`` for an UPDATE.

        Generated columns are skipped. A primary key among ``updates`` is an
        identity, so it is moved into the where conditions instead of being set.

        Returns:
            Tuple of (SET fragment, where conditions including a routed primary key)

        Raises:
            InvalidColumnError: For columns not in the table
            PrimaryKeyConflictError: If the primary key is also an explicit where key
        """
        where_conditions: Dict[str, Any] = dict(where or {})
        primary_key = self.schema.primary_key(table) if updates else None

        assignments: List[str] = []
        params: Dict[str, Any] = {}
        for column, value in updates.items():
            column = self._check_column(table, column)
            if self.schema.is_generated_column(table, column):
                continue
            if primary_key is not None and column == primary_key:
                if primary_key in self._where_columns(where_conditions):
                    raise PrimaryKeyConflictError(table, primary_key)
                where_conditions[primary_key] = value
                continue
            name = claim_parameter_name(column, params, prefix="set")
            assignments.append(f"{self.dialect.quote(column)} = :{name}")
            params[name] = value

        if not params:
            return ClauseFragment(), where_conditions
        return ClauseFragment(f"SET {', '.join(assignments)}", params), where_conditions

    @staticmethod
    def _where_columns(where: Mapping[str, Any]) -> Set[str]:
        return {parse_where_operator(key)[0] for key in where}

    def where(
        self,
        table: str,
        where: Mapping[str, Any],
        conjunction: str = "AND",
        reserved: Collection[str] = (),
    ) -> ClauseFragment:
        """
        Build ``WHERE `col` OP :param [AND|OR ...]``.

        Args:
            table: Table the conditions apply to
            where: ``{"column [OPERATOR]": comparand}``
            conjunction: ``AND`` or ``OR`` (anything else means AND)
            reserved: Parameter names already claimed by another clause (SET)

        Returns:
            WHERE fragment; empty when ``where`` is empty
        """
        taken: Set[str] = set(reserved)
        table_columns = self.schema.columns(table)
        conditions: List[str] = []
        params: Dict[str, Any] = {}

        for key, value in where.items():
            column, operator = parse_where_operator(key)
            column = self._check_column(table, column)
            quoted = self.dialect.quote(column)

            if operator in ("IS", "IS NOT") and (value is None or isinstance(value, bool)):
                literal = "NULL" if value is None else str(value).upper()
                conditions.append(f"{quoted} {operator} {literal}")
                continue

            name = claim_parameter_name(column, taken, table_columns)
            taken.add(name)
            if operator in ("IN", "BETWEEN") and isinstance(value, _SEQUENCE_TYPES):
                if not value:
                    raise EmptyParamsError(f"Empty {operator} list for column `{column}`")
                if operator == "BETWEEN" and len(value) != 2:
                    raise ParameterError(
                        f"BETWEEN on column `{column}` needs exactly two values"
                    )
                names = []
                for index, item in enumerate(value):
                    item_name = claim_parameter_name(f"{name}_{index}", taken, table_columns)
                    taken.add(item_name)
                    names.append(item_name)
                    params[item_name] = item
                conditions.append(f"{quoted} {operator} {self._expand(operator, names)}")
                continue

            if operator == "BETWEEN":
                raise ParameterError(
                    f"BETWEEN on column `{column}` needs a pair of values"
                )
            params[name] = value
            placeholder = f"(:{name})" if operator == "IN" else f":{name}"
            conditions.append(f"{quoted} {operator} {placeholder}")

        if not conditions:
            return ClauseFragment()
        joiner = f" {validate_conjunction(conjunction)} "
        return ClauseFragment(f"WHERE {joiner.join(conditions)}", params)

    @staticmethod
    def _expand(operator: str, names: Sequence[str]) -> str:
        placeholders = [f":{n}" for n in names]
        if operator == "BETWEEN":
            return " AND ".join(placeholders)
        return f"({', '.join(placeholders)})"

    def order_by(self, table: str, order_by: Mapping[str, str]) -> ClauseFragment:
        """Build ``ORDER BY `col` ASC|DESC, ...``; directions default to ASC."""
        terms = [
            f"{self.dialect.quote(self._check_column(table, column))} "
            f"{normalize_direction(direction)}"
            for column, direction in order_by.items()
        ]
        if not terms:
            return ClauseFragment()
        return ClauseFragment(f"ORDER BY {', '.join(terms)}")

    @staticmethod
    def limit(offset: int = 0, limit: int = 0) -> ClauseFragment:
        """
        ``LIMIT offset, limit`` when both are positive, ``LIMIT limit`` when only
        the count is, empty otherwise.
        """
        if limit > 0:
            if offset > 0:
                return ClauseFragment(f"LIMIT {int(offset)}, {int(limit)}")
            return ClauseFragment(f"LIMIT {int(limit)}")
        return ClauseFragment()
