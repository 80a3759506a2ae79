"""
SQL INSERT statement builders.

Provides the row-set INSERT builder with optional upsert
(``AS new ON DUPLICATE KEY UPDATE``) support.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence, Union

from tablewright.exceptions import (
    EmptyParamsError,
    InvalidColumnError,
    InvalidTableError,
    MismatchedColumnNamesError,
)

from ..core.parameters import build_indexed_params
from ..dialects.mysql import MySQLDialect
from .clauses import ClauseBuilder, ClauseFragment

if TYPE_CHECKING:
    from tablewright.infrastructure.schema.cache import SchemaCache

Rows = Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]


class InsertBuilder:
    """
    High-level builder for INSERT statements.

    Example:
        >>> builder = InsertBuilder(schema_cache)
        >>> fragment = builder.build("users", [{"a": 1, "b": 2}, {"a": 3, "b": 4}], upsert=False)
        >>> fragment.sql
        'INSERT INTO `users` (`a`, `b`) VALUES (:a_0, :b_0), (:a_1, :b_1)'
    """

    def __init__(self, schema: SchemaCache, dialect: Optional[MySQLDialect] = None):
        """
        Initialize the InsertBuilder.

        Args:
            schema: Schema cache used to validate table and columns
            dialect: SQL dialect to use for statement generation
        """
        self.schema = schema
        self.dialect = dialect or schema.dialect
        self.clauses = ClauseBuilder(schema, self.dialect)

    @staticmethod
    def normalize_rows(rows: Rows) -> List[Mapping[str, Any]]:
        """Accept a single row mapping or a sequence of row mappings."""
        if isinstance(rows, Mapping):
            return [rows]
        return list(rows)

    def build(self, table: str, rows: Rows, upsert: bool = True) -> ClauseFragment:
        """
        Build an INSERT for one or more rows sharing one column set.

        Args:
            table: Table name
            rows: A row mapping or a sequence of row mappings
            upsert: Append ON DUPLICATE KEY UPDATE for non-key, non-generated columns

        Returns:
            Fragment holding the full statement and its parameters: ``<column>``
            for a single row mapping, ``<column>_<row>`` for a sequence of rows

        Raises:
            InvalidTableError: If the table is not in the schema
            EmptyParamsError: If there are no rows or no insertable columns
            MismatchedColumnNamesError: If a row's column set differs from the first row's
            InvalidColumnError: For columns not in the table
        """
        if not self.schema.is_valid_table(table):
            raise InvalidTableError(table)

        row_list = self.normalize_rows(rows)
        if not row_list or not row_list[0]:
            raise EmptyParamsError("Cannot insert empty data into table.")

        first_columns = list(row_list[0].keys())
        for row in row_list[1:]:
            if set(row.keys()) != set(first_columns):
                raise MismatchedColumnNamesError(first_columns, list(row.keys()))

        columns: List[str] = []
        for column in first_columns:
            if not self.schema.is_valid_column(table, column):
                raise InvalidColumnError(table=table, column=column)
            if self.schema.is_generated_column(table, column):
                continue
            columns.append(column)
        if not columns:
            raise EmptyParamsError(f"No insertable columns for table `{table}`")

        names = [c.strip() for c in columns]
        if isinstance(rows, Mapping):
            values = self.clauses.values(table, {c: rows[c] for c in columns})
            sql = self.dialect.build_insert_values(table, names, values.sql)
            params = values.params
        else:
            placeholder_groups, params = build_indexed_params(row_list, columns)
            sql = self.dialect.build_insert(table, names, placeholder_groups)

        if upsert:
            update_columns = self._update_columns(table, names)
            sql = f"{sql} {self.dialect.build_upsert_clause(table, update_columns)}"
        return ClauseFragment(sql, params)

    def _update_columns(self, table: str, columns: List[str]) -> List[str]:
        primary_key = self.schema.primary_key(table)
        update_columns = [c for c in columns if c != primary_key]
        # ON DUPLICATE KEY UPDATE needs one assignment; a key-only row maps the key onto itself
        return update_columns or list(columns)
