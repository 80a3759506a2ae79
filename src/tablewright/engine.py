"""
QueryEngine: schema-validated CRUD over a single database connection.

Every table and column name is checked against the schema cache before it is
placed in SQL text, and every value travels as a bound parameter. The engine
owns one driver connection, one schema snapshot and one transaction
coordinator; it is not shared between threads.

Example:
    >>> with QueryEngine(DatabaseSettings(user="app", db="shop")) as engine:
    ...     engine.insert("orders", {"sku": "A-1", "qty": 2})
    ...     engine.select("orders", {"qty >=": 2}, order_by={"id": "DESC"}, limit=10)
"""

from typing import Any, Dict, List, Mapping, Optional

from tablewright.config.settings import DatabaseSettings, Settings, get_settings
from tablewright.exceptions import (
    DuplicateTableError,
    EmptyParamsError,
    InvalidTableError,
    MissingConnectionSettingError,
    TablewrightError,
    TransactionImplicitCommitNotAllowedError,
)
from tablewright.infrastructure.schema.cache import SchemaCache
from tablewright.infrastructure.schema.ddl_generator import generate_create_table_ddl
from tablewright.infrastructure.schema.registry import TableRegistry
from tablewright.infrastructure.sql.core.identifier import validate_identifier
from tablewright.infrastructure.sql.dialects.mysql import MySQLDialect
from tablewright.infrastructure.sql.executor import StatementExecutor, StatementResult
from tablewright.infrastructure.sql.operations.clauses import ClauseBuilder
from tablewright.infrastructure.sql.operations.insert import InsertBuilder, Rows
from tablewright.infrastructure.transaction.coordinator import (
    IncrementResult,
    Statements,
    TransactionCoordinator,
)
from tablewright.infrastructure.transaction.implicit_commit import detect_implicit_commit
from tablewright.io.connectors.driver import Driver
from tablewright.io.connectors.sqlalchemy_driver import SQLAlchemyDriver
from tablewright.utils.logging import get_logger

logger = get_logger(__name__)


class QueryEngine:
    """
    Public CRUD surface.

    Args:
        database_settings: Explicit connection settings; when neither these
            nor a driver are given, settings are read from the environment
        driver: Pre-built Driver (tests, custom connection layers)
        dialect: SQL dialect, MySQL by default
        database_name: Catalog schema to validate against; defaults to
            ``database_settings.db``
        registry: Table definitions created by ``ensure_tables``
        screen_implicit_commits: Reject batch statements that would
            implicitly commit unless a call opts out
        upsert_on_duplicate: Default for ``insert(upsert_on_duplicate=None)``
        pool_pre_ping: Passed to the engine when the driver is built here
    """

    def __init__(
        self,
        database_settings: Optional[DatabaseSettings] = None,
        *,
        driver: Optional[Driver] = None,
        dialect: Optional[MySQLDialect] = None,
        database_name: Optional[str] = None,
        registry: Optional[TableRegistry] = None,
        screen_implicit_commits: bool = True,
        upsert_on_duplicate: bool = True,
        pool_pre_ping: bool = True,
    ) -> None:
        if database_settings is None and driver is None:
            database_settings = get_settings().database_settings()

        self.dialect = dialect or MySQLDialect()
        self.registry = registry or TableRegistry()
        self.screen_implicit_commits = screen_implicit_commits
        self.upsert_on_duplicate = upsert_on_duplicate
        self.pool_pre_ping = pool_pre_ping
        self.database_settings = database_settings
        self.database_name = database_name or (
            database_settings.db if database_settings else ""
        )
        if not self.database_name:
            raise MissingConnectionSettingError("db")

        self._attach(driver or self._build_driver(database_settings))

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        registry: Optional[TableRegistry] = None,
    ) -> "QueryEngine":
        """Build an engine from application Settings (environment by default)."""
        settings = settings or get_settings()
        return cls(
            settings.database_settings(),
            registry=registry,
            screen_implicit_commits=settings.screen_implicit_commits,
            upsert_on_duplicate=settings.upsert_on_duplicate,
            pool_pre_ping=settings.pool_pre_ping,
        )

    def _build_driver(self, database_settings: Optional[DatabaseSettings]) -> Driver:
        if database_settings is None:
            raise MissingConnectionSettingError("database_settings")
        return SQLAlchemyDriver.from_settings(
            database_settings, pool_pre_ping=self.pool_pre_ping
        )

    def _attach(self, driver: Driver) -> None:
        self.driver = driver
        self.executor = StatementExecutor(driver)
        self.schema = SchemaCache(self.executor, self.database_name, self.dialect)
        self.clauses = ClauseBuilder(self.schema, self.dialect)
        self.inserter = InsertBuilder(self.schema, self.dialect)
        self.transactions = TransactionCoordinator(driver, self.executor)
        self._closed = False
        logger.info(
            "engine.initialized",
            database=self.database_name,
            driver=type(driver).__name__,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reconfigure(
        self,
        database_settings: Optional[DatabaseSettings] = None,
        *,
        driver: Optional[Driver] = None,
        database_name: Optional[str] = None,
    ) -> None:
        """
        Close the current connection and reconnect with new settings.

        The schema snapshot is discarded; the next validation call reloads it
        from the new database.
        """
        if database_settings is None and driver is None:
            raise MissingConnectionSettingError("database_settings")
        new_name = database_name or (database_settings.db if database_settings else "")
        if not new_name:
            raise MissingConnectionSettingError("db")
        new_driver = driver or self._build_driver(database_settings)

        self.shutdown()
        self.database_settings = database_settings
        self.database_name = new_name
        self._attach(new_driver)
        logger.info("engine.reconfigured", database=self.database_name)

    def shutdown(self) -> None:
        """Roll back any open transaction and close the connection. Idempotent."""
        if self._closed:
            return
        try:
            if self.transactions.active:
                logger.warning("engine.shutdown_rollback", database=self.database_name)
                self.transactions.rollback()
        finally:
            self.schema.clear()
            self.driver.close()
            self._closed = True
            logger.info("engine.shutdown", database=self.database_name)

    def __enter__(self) -> "QueryEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Raw execution
    # ------------------------------------------------------------------

    def query_execute(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> StatementResult:
        """
        Execute parameterized SQL text as-is.

        Candidate params not referenced by ``sql`` are dropped.

        Raises:
            EmptyQueryError: If ``sql`` is blank
            MissingParametersError: If a placeholder has no parameter
        """
        return self.executor.run(sql, params)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _require_table(self, table: str) -> str:
        if not self.schema.is_valid_table(table):
            raise InvalidTableError(table)
        return validate_identifier(table)

    def insert(
        self,
        table: str,
        rows: Rows,
        upsert_on_duplicate: Optional[bool] = None,
    ) -> int:
        """
        Insert one row mapping or a sequence of row mappings.

        Args:
            table: Target table
            rows: ``{column: value}`` or a list of them sharing one column set
            upsert_on_duplicate: Update non-key columns on duplicate key;
                engine default when None

        Returns:
            Affected row count as reported by the server
        """
        upsert = (
            self.upsert_on_duplicate if upsert_on_duplicate is None else upsert_on_duplicate
        )
        fragment = self.inserter.build(table, rows, upsert=upsert)
        return self.executor.run(fragment.sql, fragment.params).row_count

    def update(
        self,
        table: str,
        updates: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
        conjunction: str = "AND",
    ) -> int:
        """
        Update rows matching ``where``.

        A primary key given in ``updates`` identifies the row instead of being
        changed.

        Raises:
            EmptyParamsError: If nothing remains to SET
            PrimaryKeyConflictError: If the primary key is in both ``updates``
                and ``where``
        """
        table = self._require_table(table)
        set_fragment, where_conditions = self.clauses.set(table, updates, where)
        if not set_fragment:
            raise EmptyParamsError(f"No updatable columns given for table `{table}`")

        where_fragment = self.clauses.where(
            table, where_conditions, conjunction, reserved=set_fragment.params
        )
        sql = self.dialect.build_update(table, set_fragment.sql, where_fragment.sql)
        params: Dict[str, Any] = {**set_fragment.params, **where_fragment.params}
        return self.executor.run(sql, params).row_count

    def select(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        conjunction: str = "AND",
        offset: int = 0,
        limit: int = 0,
        order_by: Optional[Mapping[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """Select full rows matching ``where``."""
        table = self._require_table(table)
        where_fragment = self.clauses.where(table, where or {}, conjunction)
        order_fragment = self.clauses.order_by(table, order_by or {})
        limit_fragment = self.clauses.limit(offset, limit)

        sql = self.dialect.build_select(
            table, where_fragment.sql, order_fragment.sql, limit_fragment.sql
        )
        return self.executor.run(sql, where_fragment.params).rows

    def delete(
        self,
        table: str,
        where: Optional[Mapping[str, Any]] = None,
        conjunction: str = "AND",
        delete_all: bool = False,
    ) -> int:
        """
        Delete rows matching ``where``.

        With an empty ``where`` the table is truncated when ``delete_all`` is
        set; otherwise the call is refused.

        Raises:
            EmptyParamsError: If ``where`` is empty and ``delete_all`` is False
        """
        table = self._require_table(table)
        if not where:
            if not delete_all:
                raise EmptyParamsError(
                    f"Refusing to delete every row of `{table}` without delete_all=True"
                )
            self.truncate_table(table)
            return 0

        where_fragment = self.clauses.where(table, where, conjunction)
        sql = self.dialect.build_delete(table, where_fragment.sql)
        return self.executor.run(sql, where_fragment.params).row_count

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def is_valid_schema(self, table: str, column: Optional[str] = None) -> bool:
        return self.schema.is_valid_schema(table, column)

    def is_valid_trigger(
        self, table: str, trigger: str, force_reload: bool = False
    ) -> bool:
        if force_reload:
            self.schema.load(force_reload=True)
        return self.schema.is_valid_trigger(table, trigger)

    def primary_key(self, table: str) -> Optional[str]:
        return self.schema.primary_key(table)

    def reload_schema(self) -> None:
        self.schema.load(force_reload=True)

    def _run_ddl(self, sql: str) -> None:
        if self.transactions.active and self.screen_implicit_commits:
            check = detect_implicit_commit(sql)
            if not check.is_safe:
                raise TransactionImplicitCommitNotAllowedError(
                    check.category, check.statement
                )
        self.executor.run(sql)

    def truncate_table(self, table: str) -> None:
        table = self._require_table(table)
        self._run_ddl(self.dialect.build_truncate(table))
        logger.info("schema.table_truncated", table=table)
        self.reload_schema()

    def drop_table(self, table: str) -> None:
        table = self._require_table(table)
        self._run_ddl(self.dialect.build_drop(table))
        logger.info("schema.table_dropped", table=table)
        self.reload_schema()

    def rename_table(self, table: str, new_table: str) -> None:
        """
        Rename ``table`` to ``new_table``.

        Raises:
            InvalidTableError: If ``table`` does not exist
            InvalidSchemaSyntaxError: If ``new_table`` is not a safe identifier
            DuplicateTableError: If ``new_table`` already exists
        """
        table = self._require_table(table)
        new_table = validate_identifier(new_table)
        if self.schema.is_valid_table(new_table):
            raise DuplicateTableError(new_table)
        self._run_ddl(self.dialect.build_rename(table, new_table))
        logger.info("schema.table_renamed", table=table, new_table=new_table)
        self.reload_schema()

    def ensure_tables(self) -> List[str]:
        """
        Create every registered table missing from the database.

        Returns:
            Names of the tables created, in registration order
        """
        created: List[str] = []
        for definition in self.registry:
            if self.schema.is_valid_table(definition.name):
                continue
            self._run_ddl(generate_create_table_ddl(definition, dialect=self.dialect))
            created.append(definition.name)

        if created:
            logger.info("schema.tables_created", tables=created)
            self.reload_schema()
        return created

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin(self) -> None:
        self.transactions.begin()

    def commit(self) -> None:
        self.transactions.commit()

    def rollback(self) -> None:
        self.transactions.rollback()

    @property
    def in_transaction(self) -> bool:
        return self.transactions.active

    def transaction(
        self,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
        commit: bool = False,
    ) -> IncrementResult:
        """
        Run one statement inside the current transaction, opening one if needed.

        The transaction stays open for further calls unless ``commit`` is True.
        On failure it is rolled back and the error re-raised.

        Raises:
            TransactionImplicitCommitNotAllowedError: If screening is enabled
                and ``sql`` would implicitly commit; an open transaction is
                rolled back first
        """
        if self.screen_implicit_commits:
            check = detect_implicit_commit(sql)
            if not check.is_safe:
                error = TransactionImplicitCommitNotAllowedError(
                    check.category, check.statement
                )
                self.transactions.abort(error)
                raise error
        return self.transactions.run(sql, params, commit=commit)

    def execute_transaction_batch(
        self,
        statements: Statements,
        commit: bool = False,
        rollback_on_failure: bool = True,
        allow_implicit_commits: Optional[bool] = None,
    ) -> List[IncrementResult]:
        """
        Run a batch of statements in one transaction.

        The batch is rolled back at the end unless ``commit`` is True.

        Args:
            statements: SQL string, ``{sql: params}`` mapping, or iterable of
                SQL strings / ``(sql, params)`` tuples
            commit: Persist the batch
            rollback_on_failure: Abort on the first failing statement
            allow_implicit_commits: Skip implicit-commit screening; engine
                default when None

        Returns:
            One IncrementResult per statement
        """
        if allow_implicit_commits is None:
            allow_implicit_commits = not self.screen_implicit_commits
        try:
            result = self.transactions.execute_batch(
                statements,
                commit_at_end=commit,
                rollback_on_failure=rollback_on_failure,
                allow_implicit_commits=allow_implicit_commits,
            )
        except TablewrightError as e:
            logger.error("engine.batch_failed", error=e.to_dict())
            raise
        return result.increments
