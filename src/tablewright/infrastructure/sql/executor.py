"""
Statement execution: prepare -> bind -> execute -> fetch.

The executor is the only component that hands SQL text to the driver. It
reconciles candidate parameters against the placeholders in the text, infers a
bind type for every value and captures the result of the statement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from tablewright.exceptions import (
    BindError,
    EmptyQueryError,
    QueryExecutionError,
    StatementPrepareError,
)
from tablewright.utils.logging import get_logger

from .core.parameters import infer_parameter_type, reconcile_parameters

if TYPE_CHECKING:
    from tablewright.io.connectors.driver import Driver, StatementHandle

logger = get_logger(__name__)


@dataclass
class StatementResult:
    """Captured outcome of one executed statement."""

    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    last_insert_id: str = "0"

    def first(self) -> Optional[Dict[str, Any]]:
        """First row of the result set, or None when it is empty."""
        return self.rows[0] if self.rows else None


class StatementExecutor:
    """
    Runs parameterized statements through a Driver.

    Attributes:
        driver: Connection-layer collaborator.
    """

    def __init__(self, driver: Driver) -> None:
        self.driver = driver

    def prepare_and_bind(
        self, sql: str, params: Optional[Mapping[str, Any]] = None
    ) -> StatementHandle:
        """
        Prepare ``sql`` and bind every referenced parameter.

        Raises:
            EmptyQueryError: If ``sql`` is blank
            MissingParametersError: If a placeholder has no parameter
            InvalidParameterValueTypeError: If a value has no bind type
            StatementPrepareError, BindError: On driver failure
        """
        if not sql or not sql.strip():
            raise EmptyQueryError()

        bound = reconcile_parameters(sql, params or {})
        types = {name: infer_parameter_type(name, value) for name, value in bound.items()}

        handle = self.driver.prepare(sql)
        if handle is None:
            raise StatementPrepareError("Driver returned no statement handle", query=sql)

        for name, value in bound.items():
            if not self.driver.bind(handle, name, value, types[name]):
                raise BindError(f"Failed to bind parameter `{name}`", query=sql)
        return handle

    def run(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> StatementResult:
        """
        Execute one statement and capture rows, row count and last insert id.

        Returns:
            StatementResult for the executed statement
        """
        handle = self.prepare_and_bind(sql, params)
        if not self.driver.execute(handle):
            raise QueryExecutionError("Statement execution reported failure", query=sql)

        result = StatementResult(
            rows=self.driver.fetch_all(handle),
            row_count=self.driver.row_count(handle),
            last_insert_id=self.driver.last_insert_id(),
        )
        logger.debug(
            "statement.executed",
            statement=sql,
            params=handle.params,
            row_count=result.row_count,
        )
        return result
