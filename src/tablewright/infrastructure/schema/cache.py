"""
Schema snapshot cache backed by the database's information catalog.

The snapshot is loaded lazily on the first validation call and reflects the
catalog at load time. Callers that change the schema (DDL through this or
another engine instance) must force a reload to see the change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from tablewright.exceptions import (
    ExecutionError,
    InvalidSchemaSyntaxError,
    InvalidTableError,
    SchemaLoadError,
)
from tablewright.infrastructure.sql.core.identifier import validate_identifier
from tablewright.infrastructure.sql.dialects.mysql import MySQLDialect
from tablewright.infrastructure.sql.executor import StatementExecutor
from tablewright.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SchemaSnapshot:
    """Tables, their column types, generated columns and triggers at load time."""

    tables: Dict[str, Dict[str, str]] = field(default_factory=dict)
    generated_columns: Dict[str, List[str]] = field(default_factory=dict)
    triggers: Dict[str, Set[str]] = field(default_factory=dict)

    def columns(self, table: str) -> List[str]:
        return list(self.tables.get(table, {}))


class SchemaCache:
    """
    Loads and answers questions about the schema of one database.

    Attributes:
        executor: StatementExecutor used for catalog queries.
        database_name: Catalog schema whose tables are validated.
        dialect: Dialect supplying catalog queries.
    """

    def __init__(
        self,
        executor: StatementExecutor,
        database_name: str,
        dialect: Optional[MySQLDialect] = None,
    ) -> None:
        self.executor = executor
        self.database_name = database_name
        self.dialect = dialect or MySQLDialect()
        self._snapshot: Optional[SchemaSnapshot] = None
        self._triggers_loaded = False

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> SchemaSnapshot:
        """The current snapshot, loading it first if necessary."""
        self.load()
        assert self._snapshot is not None
        return self._snapshot

    def load(self, force_reload: bool = False) -> None:
        """
        Fetch table/column/type/generated-column/trigger metadata.

        No-op when already loaded and ``force_reload`` is False.

        Raises:
            SchemaLoadError: If a catalog query fails
        """
        if self._snapshot is not None and not force_reload:
            return

        params = {"database_name": self.database_name}
        try:
            column_rows = self.executor.run(self.dialect.columns_query, params).rows
            trigger_rows = self.executor.run(self.dialect.triggers_query, params).rows
        except ExecutionError as e:
            logger.error(
                "schema.load_failed",
                database=self.database_name,
                error=str(e),
            )
            raise SchemaLoadError(self.database_name, e) from e

        snapshot = SchemaSnapshot()
        for row in column_rows:
            table = row["TABLE_NAME"]
            column = row["COLUMN_NAME"]
            snapshot.tables.setdefault(table, {})[column] = row["DATA_TYPE"]
            if self.dialect.is_generated(row.get("EXTRA")):
                snapshot.generated_columns.setdefault(table, []).append(column)
        self._apply_triggers(snapshot, trigger_rows)

        self._snapshot = snapshot
        logger.info(
            "schema.loaded",
            database=self.database_name,
            table_count=len(snapshot.tables),
            trigger_count=sum(len(t) for t in snapshot.triggers.values()),
        )

    def reload_triggers(self) -> None:
        """Refresh only the trigger map of the loaded snapshot."""
        snapshot = self.snapshot
        try:
            rows = self.executor.run(
                self.dialect.triggers_query, {"database_name": self.database_name}
            ).rows
        except ExecutionError as e:
            raise SchemaLoadError(self.database_name, e) from e
        snapshot.triggers = {}
        self._apply_triggers(snapshot, rows)

    def clear(self) -> None:
        """Drop the snapshot; the next validation call reloads it."""
        self._snapshot = None

    @staticmethod
    def _apply_triggers(snapshot: SchemaSnapshot, rows: List[dict]) -> None:
        for row in rows:
            snapshot.triggers.setdefault(row["EVENT_OBJECT_TABLE"], set()).add(
                row["TRIGGER_NAME"]
            )

    def is_valid_table(self, table: str) -> bool:
        """
        Whether ``table`` exists in the snapshot (case-sensitive exact match).

        Raises:
            InvalidSchemaSyntaxError: If ``table`` is not a safe identifier
        """
        table = validate_identifier(table)
        return table in self.snapshot.tables

    def is_valid_column(self, table: str, column: str) -> bool:
        """
        Whether ``column`` exists in ``table``; False for unknown tables.

        Raises:
            InvalidSchemaSyntaxError: If either name is not a safe identifier
        """
        table = validate_identifier(table)
        column = validate_identifier(column)
        return column in self.snapshot.tables.get(table, {})

    def is_valid_schema(self, table: str, column: Optional[str] = None) -> bool:
        """Table check when ``column`` is empty, table+column check otherwise."""
        if column is None or not column.strip():
            return self.is_valid_table(table)
        return self.is_valid_column(table, column)

    def is_generated_column(self, table: str, column: str) -> bool:
        """Whether the catalog marks ``table.column`` as generated/computed."""
        table = validate_identifier(table)
        column = validate_identifier(column)
        return column in self.snapshot.generated_columns.get(table, [])

    def columns(self, table: str) -> List[str]:
        """Column names of ``table`` in catalog order; empty for unknown tables."""
        return self.snapshot.columns(validate_identifier(table))

    def column_type(self, table: str, column: str) -> Optional[str]:
        return self.snapshot.tables.get(table, {}).get(column)

    def is_valid_trigger(self, table: str, trigger: str) -> bool:
        """
        Whether ``trigger`` is defined on ``table``.

        The trigger map is reloaded once on a miss, since triggers are commonly
        created after the snapshot was taken.
        """
        if not self.is_valid_table(table):
            return False
        try:
            trigger = validate_identifier(trigger)
        except InvalidSchemaSyntaxError:
            return False

        if trigger in self.snapshot.triggers.get(table, set()):
            return True

        self.reload_triggers()
        return trigger in self.snapshot.triggers.get(table, set())

    def primary_key(self, table: str) -> Optional[str]:
        """
        Query the live catalog for ``table``'s primary key column.

        Returns:
            The first primary key column, or None if the table has none

        Raises:
            InvalidTableError: If ``table`` is not in the snapshot
        """
        if not self.is_valid_table(table):
            raise InvalidTableError(table)

        table = validate_identifier(table)
        row = self.executor.run(self.dialect.primary_key_query(table)).first()
        if row is None:
            return None
        return self.dialect.primary_key_column(row)
