"""
SQLAlchemy-backed Driver implementation.

One engine, one long-lived connection. The connection runs with the
``AUTOCOMMIT`` isolation level so SQLAlchemy never wraps statements in a
transaction of its own; transaction boundaries are issued explicitly as SQL
(``START TRANSACTION`` / ``COMMIT`` / ``ROLLBACK``) by the coordinator.

Whether the server still considers a transaction open is read from the DBAPI
connection: PyMySQL exposes the server status flags of the last OK packet,
sqlite3 exposes ``in_transaction``. Other DBAPI modules fall back to the
driver's own bookkeeping.
"""

from typing import Any, Dict, List, Optional, Union

from pymysql.constants import SERVER_STATUS
from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.types import Boolean, Integer, NullType, String

from tablewright.config.settings import DatabaseSettings
from tablewright.exceptions import (
    DatabaseConnectionError,
    QueryExecutionError,
    StatementPrepareError,
)
from tablewright.infrastructure.sql.core.parameters import ParamType, find_placeholders
from tablewright.utils.logging import get_logger

from .driver import StatementHandle

logger = get_logger(__name__)

_BIND_TYPES = {
    ParamType.BOOL: Boolean,
    ParamType.INT: Integer,
    ParamType.STRING: String,
    ParamType.NULL: NullType,
}


def _error_code(error: DBAPIError) -> Optional[int]:
    """Vendor error number from the wrapped DBAPI exception, when it has one."""
    args = getattr(error.orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _error_message(error: SQLAlchemyError) -> str:
    orig = getattr(error, "orig", None)
    if orig is not None:
        args = getattr(orig, "args", ())
        if len(args) > 1 and isinstance(args[0], int):
            return str(args[1])
        return str(orig)
    return str(error)


class SQLAlchemyDriver:
    """
    Driver over a SQLAlchemy engine.

    Args:
        engine: Engine instance or database URL
        begin_statement: SQL that opens a transaction on this backend
        **engine_kwargs: Passed to ``create_engine`` when ``engine`` is a URL
    """

    def __init__(
        self,
        engine: Union[Engine, str],
        begin_statement: str = "START TRANSACTION",
        **engine_kwargs: Any,
    ) -> None:
        if isinstance(engine, str):
            engine = create_engine(engine, **engine_kwargs)
            self._owns_engine = True
        else:
            self._owns_engine = False
        self.engine = engine
        self.begin_statement = begin_statement
        self._connection: Optional[Connection] = None
        self._in_transaction = False
        self._last_insert_id = "0"

    @classmethod
    def from_settings(
        cls, settings: DatabaseSettings, pool_pre_ping: bool = True
    ) -> "SQLAlchemyDriver":
        """
        Build a driver from explicit connection settings.

        Raises:
            MissingConnectionSettingError: If a required setting is empty
        """
        settings.validate()
        return cls(settings.get_connection_string(), pool_pre_ping=pool_pre_ping)

    @property
    def connection(self) -> Connection:
        """The driver's connection, opened on first use."""
        if self._connection is None or self._connection.closed:
            try:
                self._connection = self.engine.connect().execution_options(
                    isolation_level="AUTOCOMMIT"
                )
            except SQLAlchemyError as e:
                logger.error(
                    "driver.connect_failed",
                    url=self.engine.url.render_as_string(hide_password=True),
                    error=_error_message(e),
                )
                raise DatabaseConnectionError(
                    _error_message(e),
                    code=_error_code(e) if isinstance(e, DBAPIError) else None,
                ) from e
            logger.debug(
                "driver.connected",
                url=self.engine.url.render_as_string(hide_password=True),
            )
        return self._connection

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def prepare(self, sql: str) -> StatementHandle:
        try:
            clause = text(sql)
        except SQLAlchemyError as e:
            raise StatementPrepareError(str(e), query=sql) from e
        return StatementHandle(sql=sql, placeholders=find_placeholders(sql), native=clause)

    def bind(
        self, handle: StatementHandle, name: str, value: Any, param_type: ParamType
    ) -> bool:
        if name not in handle.placeholders:
            return False
        handle.params[name] = value
        handle.types[name] = param_type
        return True

    def execute(self, handle: StatementHandle) -> bool:
        clause = handle.native.bindparams(
            *(
                bindparam(name, value, type_=_BIND_TYPES[handle.types[name]]())
                for name, value in handle.params.items()
            )
        )
        try:
            result = self.connection.execute(clause)
        except DBAPIError as e:
            raise QueryExecutionError(
                _error_message(e), code=_error_code(e), query=handle.sql
            ) from e
        except SQLAlchemyError as e:
            raise QueryExecutionError(str(e), query=handle.sql) from e

        if result.returns_rows:
            handle.result = [dict(row._mapping) for row in result]
            handle.row_count = len(handle.result)
        else:
            handle.result = []
            handle.row_count = result.rowcount
            if result.lastrowid:
                self._last_insert_id = str(result.lastrowid)
        return True

    def fetch_all(self, handle: StatementHandle) -> List[Dict[str, Any]]:
        rows = handle.result or []
        handle.result = []
        return rows

    def fetch_one(self, handle: StatementHandle) -> Optional[Dict[str, Any]]:
        if not handle.result:
            return None
        return handle.result.pop(0)

    def row_count(self, handle: StatementHandle) -> int:
        return max(handle.row_count, 0)

    def last_insert_id(self) -> str:
        return self._last_insert_id

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _run_control(self, statement: str) -> None:
        try:
            self.connection.exec_driver_sql(statement)
        except DBAPIError as e:
            raise QueryExecutionError(
                _error_message(e), code=_error_code(e), query=statement
            ) from e

    def begin_transaction(self) -> bool:
        self._run_control(self.begin_statement)
        self._in_transaction = True
        return True

    def commit(self) -> bool:
        self._run_control("COMMIT")
        self._in_transaction = False
        return True

    def rollback(self) -> bool:
        self._run_control("ROLLBACK")
        self._in_transaction = False
        return True

    def in_transaction(self) -> bool:
        """Whether the server reports an open transaction on this connection."""
        if self._connection is None or self._connection.closed:
            return False
        raw = self._connection.connection.dbapi_connection

        status = getattr(raw, "server_status", None)
        if isinstance(status, int):
            return bool(status & SERVER_STATUS.SERVER_STATUS_IN_TRANS)
        flag = getattr(raw, "in_transaction", None)
        if isinstance(flag, bool):
            return flag
        return self._in_transaction

    def close(self) -> None:
        if self._connection is not None and not self._connection.closed:
            self._connection.close()
        self._connection = None
        self._in_transaction = False
        if self._owns_engine:
            self.engine.dispose()
        logger.debug("driver.closed")
