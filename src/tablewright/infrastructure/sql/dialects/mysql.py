"""
MySQL-specific SQL dialect implementation.

Provides MySQL syntax for statement assembly, upsert handling, identifier
quoting and the information-catalog queries backing the schema cache.
"""

import re
from typing import List, Optional, Sequence

from ..core.identifier import qualify_table, quote_identifier

# DEFAULT_GENERATED marks an expression default, not a generated column
_GENERATED_EXTRA = re.compile(r"\b(?:VIRTUAL|STORED) GENERATED\b", re.IGNORECASE)


class MySQLDialect:
    """MySQL SQL dialect implementation."""

    name = "mysql"
    begin_statement = "START TRANSACTION"
    upsert_alias = "new"

    columns_query = (
        "SELECT `TABLE_NAME`, `COLUMN_NAME`, `DATA_TYPE`, `EXTRA` "
        "FROM `INFORMATION_SCHEMA`.`COLUMNS` "
        "WHERE `TABLE_SCHEMA` = :database_name "
        "ORDER BY `TABLE_NAME`, `ORDINAL_POSITION`"
    )
    triggers_query = (
        "SELECT `TRIGGER_NAME`, `EVENT_OBJECT_TABLE` "
        "FROM `INFORMATION_SCHEMA`.`TRIGGERS` "
        "WHERE `TRIGGER_SCHEMA` = :database_name"
    )

    def quote(self, identifier: str) -> str:
        """Quote an identifier using MySQL syntax (backticks)."""
        return quote_identifier(identifier, dialect=self.name)

    def qualify(self, table: str, schema: Optional[str] = None) -> str:
        """Create a fully qualified table reference."""
        return qualify_table(table, schema, dialect=self.name)

    def is_generated(self, extra: Optional[str]) -> bool:
        """Whether an INFORMATION_SCHEMA.COLUMNS.EXTRA value marks a generated column."""
        return bool(_GENERATED_EXTRA.search(extra or ""))

    def primary_key_query(self, table: str) -> str:
        """Live catalog query for a table's primary key columns."""
        return f"SHOW KEYS FROM {self.qualify(table)} WHERE `Key_name` = 'PRIMARY'"

    def primary_key_column(self, row: dict) -> Optional[str]:
        return row.get("Column_name")

    def build_insert(
        self,
        table: str,
        columns: List[str],
        placeholder_groups: Sequence[Sequence[str]],
    ) -> str:
        """
        Build a (possibly multi-row) INSERT statement.

        Args:
            table: Table name
            columns: List of column names
            placeholder_groups: One placeholder list per row

        Returns:
            INSERT SQL statement
        """
        values = ", ".join(f"({', '.join(group)})" for group in placeholder_groups)
        return self.build_insert_values(table, columns, f"VALUES {values}")

    def build_insert_values(self, table: str, columns: List[str], values_clause: str) -> str:
        """INSERT statement around an already assembled VALUES clause."""
        quoted_cols = ", ".join(self.quote(c) for c in columns)
        return f"INSERT INTO {self.qualify(table)} ({quoted_cols}) {values_clause}"

    def build_upsert_clause(self, table: str, update_columns: List[str]) -> str:
        """
        Build the ``AS new ON DUPLICATE KEY UPDATE`` suffix.

        Every update column takes the value of the incoming row.
        """
        alias = self.quote(self.upsert_alias)
        qualified_table = self.qualify(table)
        assignments = ", ".join(
            f"{qualified_table}.{self.quote(col)} = {alias}.{self.quote(col)}"
            for col in update_columns
        )
        return f"AS {alias} ON DUPLICATE KEY UPDATE {assignments}"

    def build_select(self, table: str, *clauses: str) -> str:
        return self._join(f"SELECT * FROM {self.qualify(table)}", *clauses)

    def build_update(self, table: str, set_clause: str, *clauses: str) -> str:
        return self._join(f"UPDATE {self.qualify(table)}", set_clause, *clauses)

    def build_delete(self, table: str, *clauses: str) -> str:
        return self._join(f"DELETE FROM {self.qualify(table)}", *clauses)

    def build_truncate(self, table: str) -> str:
        return f"TRUNCATE TABLE {self.qualify(table)}"

    def build_drop(self, table: str) -> str:
        return f"DROP TABLE {self.qualify(table)}"

    def build_rename(self, old_table: str, new_table: str) -> str:
        return f"RENAME TABLE {self.qualify(old_table)} TO {self.qualify(new_table)}"

    @staticmethod
    def _join(*parts: str) -> str:
        return " ".join(part for part in parts if part)
