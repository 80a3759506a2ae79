"""
Transaction coordinator.

Sequences begin/commit/rollback around one or more statements on a single
driver connection. State machine::

    IDLE --begin--> ACTIVE --commit|rollback--> IDLE

Batches are screened for statements that would implicitly commit before the
transaction is opened. When screening is waived and the server reports that a
statement ended the transaction anyway, a new transaction is opened so the
rest of the batch still runs under one; the increment is flagged with
``implicit_commit=True`` because the statements before it can no longer be
rolled back.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from tablewright.exceptions import (
    EmptyParamsError,
    ExecutionError,
    TablewrightError,
    TransactionBeginFailedError,
    TransactionCommitFailedError,
    TransactionImplicitCommitNotAllowedError,
    TransactionInProgressError,
    TransactionNotInProgressError,
    TransactionRollbackFailedError,
)
from tablewright.infrastructure.sql.executor import StatementExecutor
from tablewright.io.connectors.driver import Driver
from tablewright.utils.logging import get_logger

from .implicit_commit import detect_implicit_commit

logger = get_logger(__name__)

Statement = Union[str, Tuple[str, Optional[Mapping[str, Any]]]]
Statements = Union[str, Iterable[Statement], Mapping[str, Optional[Mapping[str, Any]]]]


class TransactionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class IncrementResult:
    """Outcome of one statement executed inside a transaction."""

    statement: str
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    last_insert_id: str = "0"
    implicit_commit: bool = False
    error: Optional[TablewrightError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Outcome of a statement batch."""

    increments: List[IncrementResult] = field(default_factory=list)
    committed: bool = False

    @property
    def success(self) -> bool:
        return all(increment.success for increment in self.increments)

    @property
    def implicit_commits(self) -> int:
        return sum(1 for increment in self.increments if increment.implicit_commit)


def normalize_statements(statements: Statements) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Accept the batch shapes callers use and return ``(sql, params)`` pairs.

    Supported shapes: a single SQL string, a mapping of SQL to params, or an
    iterable of SQL strings and ``(sql, params)`` tuples.
    """
    if isinstance(statements, str):
        return [(statements, {})]
    if isinstance(statements, Mapping):
        return [(sql, dict(params or {})) for sql, params in statements.items()]

    normalized: List[Tuple[str, Dict[str, Any]]] = []
    for item in statements:
        if isinstance(item, str):
            normalized.append((item, {}))
        else:
            sql, params = item
            normalized.append((sql, dict(params or {})))
    return normalized


class TransactionCoordinator:
    """
    Owns the transaction state of one driver connection.

    Attributes:
        driver: Connection-layer collaborator.
        executor: Executor used for every increment.
        state: Current TransactionState.
    """

    def __init__(
        self, driver: Driver, executor: Optional[StatementExecutor] = None
    ) -> None:
        self.driver = driver
        self.executor = executor or StatementExecutor(driver)
        self.state = TransactionState.IDLE

    @property
    def active(self) -> bool:
        return self.state is TransactionState.ACTIVE

    def begin(self) -> None:
        """
        Open a transaction.

        Raises:
            TransactionInProgressError: If one is already active
            TransactionBeginFailedError: If the driver cannot open one
        """
        if self.active:
            raise TransactionInProgressError()
        try:
            started = self.driver.begin_transaction()
        except ExecutionError as e:
            raise TransactionBeginFailedError(f"Failed to begin transaction: {e}") from e
        if not started:
            raise TransactionBeginFailedError("Driver failed to begin a transaction")
        self.state = TransactionState.ACTIVE
        logger.debug("transaction.begin")

    def commit(self) -> None:
        """
        Commit the active transaction.

        Raises:
            TransactionNotInProgressError: If no transaction is active
            TransactionCommitFailedError: If the driver cannot commit
        """
        if not self.active:
            raise TransactionNotInProgressError("commit")
        try:
            committed = self.driver.commit()
        except ExecutionError as e:
            raise TransactionCommitFailedError(f"Failed to commit transaction: {e}") from e
        if not committed:
            raise TransactionCommitFailedError("Driver failed to commit the transaction")
        self.state = TransactionState.IDLE
        logger.debug("transaction.commit")

    def rollback(self) -> None:
        """
        Roll back the active transaction.

        Raises:
            TransactionNotInProgressError: If no transaction is active
            TransactionRollbackFailedError: If the driver cannot roll back
        """
        if not self.active:
            raise TransactionNotInProgressError("roll back")
        try:
            rolled_back = self.driver.rollback()
        except ExecutionError as e:
            raise TransactionRollbackFailedError(
                f"Failed to roll back transaction: {e}"
            ) from e
        if not rolled_back:
            raise TransactionRollbackFailedError("Driver failed to roll back the transaction")
        self.state = TransactionState.IDLE
        logger.debug("transaction.rollback")

    def abort(self, cause: BaseException) -> None:
        """
        Roll back after ``cause`` if a transaction is still active.

        A failing rollback is raised as TransactionRollbackFailedError chained
        from ``cause``.
        """
        if not self.active:
            return
        try:
            self.rollback()
        except TransactionRollbackFailedError as rollback_error:
            logger.error(
                "transaction.rollback_failed",
                cause=type(cause).__name__,
                error=str(rollback_error),
            )
            raise TransactionRollbackFailedError(
                f"{rollback_error} (while handling {type(cause).__name__}: {cause})"
            ) from cause

    def commit_or_abort(self) -> None:
        """Commit, rolling back before re-raising when the commit fails."""
        try:
            self.commit()
        except TransactionCommitFailedError as e:
            logger.error("transaction.commit_failed", error=str(e))
            self.abort(e)
            raise

    def increment(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> IncrementResult:
        """
        Execute one statement inside the active transaction.

        If the server no longer reports an open transaction afterwards, the
        statement implicitly committed; a new transaction is opened and the
        result is flagged.

        Raises:
            TransactionNotInProgressError: If no transaction is active
        """
        if not self.active:
            raise TransactionNotInProgressError("run a statement in")

        result = self.executor.run(sql, params)
        increment = IncrementResult(
            statement=sql,
            rows=result.rows,
            row_count=result.row_count,
            last_insert_id=result.last_insert_id,
        )

        if not self.driver.in_transaction():
            increment.implicit_commit = True
            logger.warning(
                "transaction.implicit_commit",
                statement=sql,
            )
            self.state = TransactionState.IDLE
            self.begin()
        return increment

    def run(
        self,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
        commit: bool = False,
    ) -> IncrementResult:
        """
        Run one statement incrementally, beginning a transaction if none is active.

        The transaction stays open unless ``commit`` is True. On failure the
        transaction is rolled back and the error re-raised.
        """
        if not self.active:
            self.begin()
        try:
            increment = self.increment(sql, params)
        except TablewrightError as e:
            self.abort(e)
            raise
        if commit:
            self.commit_or_abort()
        return increment

    def screen(self, statements: List[Tuple[str, Dict[str, Any]]]) -> None:
        """
        Reject the batch if any statement would implicitly commit.

        Raises:
            TransactionImplicitCommitNotAllowedError: For the first offending statement
        """
        for index, (sql, _) in enumerate(statements):
            check = detect_implicit_commit(sql)
            if not check.is_safe:
                logger.warning(
                    "transaction.implicit_commit_rejected",
                    category=check.category,
                    index=index,
                )
                raise TransactionImplicitCommitNotAllowedError(
                    check.category, check.statement, index
                )

    def execute_batch(
        self,
        statements: Statements,
        commit_at_end: bool = False,
        rollback_on_failure: bool = True,
        allow_implicit_commits: bool = False,
    ) -> BatchResult:
        """
        Run statements in order inside one transaction.

        Args:
            statements: SQL string, ``{sql: params}`` mapping, or iterable of
                SQL strings / ``(sql, params)`` tuples
            commit_at_end: Commit when the batch finishes; roll back otherwise
            rollback_on_failure: Roll back and raise on the first failing
                statement; otherwise record the error and continue
            allow_implicit_commits: Skip screening for implicit-commit statements

        Returns:
            BatchResult with one IncrementResult per statement

        Raises:
            EmptyParamsError: If there are no statements
            TransactionInProgressError: If a transaction is already active
            TransactionImplicitCommitNotAllowedError: If screening rejects a
                statement; nothing has executed
            TablewrightError: The failing statement's error when
                ``rollback_on_failure`` is set
        """
        batch = normalize_statements(statements)
        if not batch:
            raise EmptyParamsError("No statements to execute")
        if not allow_implicit_commits:
            self.screen(batch)

        self.begin()
        result = BatchResult()
        for index, (sql, params) in enumerate(batch):
            try:
                increment = self.increment(sql, params)
            except TablewrightError as e:
                logger.error(
                    "transaction.statement_failed",
                    index=index,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                result.increments.append(IncrementResult(statement=sql, error=e))
                if rollback_on_failure:
                    self.abort(e)
                    raise
                continue
            result.increments.append(increment)

        if not self.active:
            # a failed re-open after an implicit commit leaves nothing to end
            logger.warning("transaction.batch_lost_transaction", statements=len(batch))
        elif commit_at_end:
            self.commit_or_abort()
            result.committed = True
        else:
            self.rollback()

        logger.info(
            "transaction.batch_completed",
            statements=len(batch),
            failed=sum(1 for i in result.increments if not i.success),
            implicit_commits=result.implicit_commits,
            committed=result.committed,
        )
        return result
