"""Pytest configuration and shared fixtures.

Engine, schema cache and coordinator tests run against FakeDriver, an
in-memory stand-in for the connection layer that answers the catalog queries
from a declared table map and records every statement it executes. The
SQLAlchemy driver itself is exercised against SQLite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import pytest
from dotenv import load_dotenv

# Optional test-only overrides (never the developer's .env)
_TEST_ENV_FILE = Path(__file__).parent.parent / ".tw_env.test"
if _TEST_ENV_FILE.exists():
    load_dotenv(_TEST_ENV_FILE, override=True)

from tablewright.config.settings import get_settings  # noqa: E402
from tablewright.engine import QueryEngine  # noqa: E402
from tablewright.exceptions import QueryExecutionError  # noqa: E402
from tablewright.infrastructure.schema.cache import SchemaCache  # noqa: E402
from tablewright.infrastructure.sql.executor import StatementExecutor  # noqa: E402
from tablewright.io.connectors.driver import StatementHandle  # noqa: E402

DEFAULT_TABLES: Dict[str, Dict[str, str]] = {
    "users": {
        "id": "int",
        "name": "varchar",
        "status": "varchar",
        "age": "int",
        "where_age": "int",
        "full_name": "varchar",
    },
    "orders": {
        "id": "int",
        "sku": "varchar",
        "qty": "int",
        "total": "decimal",
    },
    "tags": {
        "label": "varchar",
    },
}
DEFAULT_GENERATED = {"users": ["full_name"], "orders": ["total"]}
DEFAULT_TRIGGERS = {"orders": ["orders_before_insert"]}
DEFAULT_PRIMARY_KEYS = {"users": "id", "orders": "id"}


class FakeDriver:
    """In-memory Driver: catalog answers come from ``tables``; everything is recorded."""

    def __init__(
        self,
        tables: Optional[Dict[str, Dict[str, str]]] = None,
        generated: Optional[Dict[str, List[str]]] = None,
        triggers: Optional[Dict[str, List[str]]] = None,
        primary_keys: Optional[Dict[str, str]] = None,
        extras: Optional[Dict[str, Dict[str, str]]] = None,
    ) -> None:
        self.tables = {t: dict(c) for t, c in (tables or DEFAULT_TABLES).items()}
        self.generated = generated if generated is not None else dict(DEFAULT_GENERATED)
        self.triggers = {t: list(n) for t, n in (triggers or DEFAULT_TRIGGERS).items()}
        self.primary_keys = (
            primary_keys if primary_keys is not None else dict(DEFAULT_PRIMARY_KEYS)
        )
        # explicit INFORMATION_SCHEMA EXTRA values, e.g. {"events": {"created_at": "DEFAULT_GENERATED"}}
        self.extras = {t: dict(c) for t, c in (extras or {}).items()}
        self.executed: List[Tuple[str, Dict[str, Any]]] = []
        self.transaction_calls: List[str] = []
        self.results: Dict[str, List[Dict[str, Any]]] = {}
        self.row_counts: Dict[str, int] = {}
        self.failures: Dict[str, Exception] = {}
        self.ends_transaction: Callable[[str], bool] = lambda sql: False
        self.fail_begin = False
        self.fail_commit = False
        self.fail_rollback = False
        self.catalog_loads = 0
        self.trigger_loads = 0
        self.closed = False
        self._in_transaction = False
        self._insert_id = 0

    # statements ---------------------------------------------------------

    def prepare(self, sql: str) -> StatementHandle:
        from tablewright.infrastructure.sql.core.parameters import find_placeholders

        return StatementHandle(sql=sql, placeholders=find_placeholders(sql))

    def bind(self, handle: StatementHandle, name: str, value: Any, param_type: Any) -> bool:
        if name not in handle.placeholders:
            return False
        handle.params[name] = value
        handle.types[name] = param_type
        return True

    def execute(self, handle: StatementHandle) -> bool:
        for fragment, error in self.failures.items():
            if fragment in handle.sql:
                raise error

        sql = handle.sql
        self.executed.append((sql, dict(handle.params)))
        rows = self._rows_for(sql)
        handle.result = list(rows)
        handle.row_count = self._row_count_for(sql, rows)

        if sql.startswith("INSERT"):
            self._insert_id += 1
        if self._in_transaction and self.ends_transaction(sql):
            self._in_transaction = False
        return True

    def _rows_for(self, sql: str) -> List[Dict[str, Any]]:
        if "`INFORMATION_SCHEMA`.`COLUMNS`" in sql:
            self.catalog_loads += 1
            return [
                {
                    "TABLE_NAME": table,
                    "COLUMN_NAME": column,
                    "DATA_TYPE": data_type,
                    "EXTRA": self._extra_for(table, column),
                }
                for table, columns in self.tables.items()
                for column, data_type in columns.items()
            ]
        if "`INFORMATION_SCHEMA`.`TRIGGERS`" in sql:
            self.trigger_loads += 1
            return [
                {"TRIGGER_NAME": name, "EVENT_OBJECT_TABLE": table}
                for table, names in self.triggers.items()
                for name in names
            ]
        if sql.startswith("SHOW KEYS FROM"):
            table = sql.split("`")[1]
            key = self.primary_keys.get(table)
            return [{"Key_name": "PRIMARY", "Column_name": key}] if key else []
        for fragment, rows in self.results.items():
            if fragment in sql:
                return rows
        return []

    def _extra_for(self, table: str, column: str) -> str:
        if column in self.extras.get(table, {}):
            return self.extras[table][column]
        return "STORED GENERATED" if column in self.generated.get(table, []) else ""

    def _row_count_for(self, sql: str, rows: List[Dict[str, Any]]) -> int:
        for fragment, count in self.row_counts.items():
            if fragment in sql:
                return count
        return len(rows) if rows else 1

    def fetch_all(self, handle: StatementHandle) -> List[Dict[str, Any]]:
        rows, handle.result = handle.result or [], []
        return rows

    def fetch_one(self, handle: StatementHandle) -> Optional[Dict[str, Any]]:
        return handle.result.pop(0) if handle.result else None

    def row_count(self, handle: StatementHandle) -> int:
        return handle.row_count

    def last_insert_id(self) -> str:
        return str(self._insert_id)

    # transactions -------------------------------------------------------

    def begin_transaction(self) -> bool:
        self.transaction_calls.append("begin")
        if self.fail_begin:
            return False
        self._in_transaction = True
        return True

    def commit(self) -> bool:
        self.transaction_calls.append("commit")
        if self.fail_commit:
            return False
        self._in_transaction = False
        return True

    def rollback(self) -> bool:
        self.transaction_calls.append("rollback")
        if self.fail_rollback:
            return False
        self._in_transaction = False
        return True

    def in_transaction(self) -> bool:
        return self._in_transaction

    def close(self) -> None:
        self.closed = True

    # helpers ------------------------------------------------------------

    def statements(self, prefix: str = "") -> List[str]:
        """Executed SQL, optionally only statements starting with ``prefix``."""
        return [sql for sql, _ in self.executed if sql.startswith(prefix)]

    def last(self, prefix: str = "") -> Tuple[str, Dict[str, Any]]:
        matching = [(s, p) for s, p in self.executed if s.startswith(prefix)]
        return matching[-1]

    def fail_on(self, fragment: str, code: int = 1064, message: str = "boom") -> None:
        self.failures[fragment] = QueryExecutionError(message, code=code)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterable[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def make_driver() -> Callable[..., FakeDriver]:
    return FakeDriver


@pytest.fixture
def executor(fake_driver: FakeDriver) -> StatementExecutor:
    return StatementExecutor(fake_driver)


@pytest.fixture
def schema_cache(executor: StatementExecutor) -> SchemaCache:
    return SchemaCache(executor, "shop")


@pytest.fixture
def engine(fake_driver: FakeDriver) -> Iterable[QueryEngine]:
    query_engine = QueryEngine(driver=fake_driver, database_name="shop")
    yield query_engine
    query_engine.shutdown()
