"""
Exception hierarchy for tablewright.

Errors are grouped by the phase that raises them:

- SchemaError: identifier or catalog validation failed before any SQL text
  was assembled.
- ParameterError: clause or parameter assembly failed; nothing executed.
- ExecutionError: the driver rejected a prepare/bind/execute call.
- TransactionError: the transaction state machine was violated or a
  begin/commit/rollback call failed.
- ConfigurationError: connection settings are incomplete.
"""

from typing import Any, Dict, Iterable, List, Optional


class TablewrightError(Exception):
    """Base exception for all tablewright errors."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to structured dict for logging."""
        return {
            "error_type": type(self).__name__,
            "message": str(self),
        }


# ---------------------------------------------------------------------------
# Schema errors
# ---------------------------------------------------------------------------


class SchemaError(TablewrightError):
    """Raised when a table, column or identifier fails schema validation."""


class InvalidSchemaSyntaxError(SchemaError):
    """Raised when an identifier contains characters outside the safe set."""

    def __init__(self, identifier: Any):
        self.identifier = identifier
        super().__init__(f"Invalid identifier syntax: {identifier!r}")


class InvalidTableError(SchemaError):
    """Raised when a table is not present in the schema snapshot."""

    def __init__(self, table: str, message: Optional[str] = None):
        self.table = table
        super().__init__(message or f"Invalid or unknown table `{table}`")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["table"] = self.table
        return data


class InvalidColumnError(SchemaError):
    """Raised when a column is not present in the table's schema."""

    def __init__(self, table: str = "", column: str = ""):
        self.table = table
        self.column = column
        if table:
            message = (
                f"Unknown column `{column}` in table `{table}`"
                if column
                else f"Unknown column in table `{table}`"
            )
        else:
            message = (
                f"Unknown column name `{column}`"
                if column
                else "Unknown column referenced in table"
            )
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"table": self.table, "column": self.column})
        return data


class DuplicateTableError(SchemaError):
    """Raised when a rename targets a table name that already exists."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Table `{table}` already exists")


class InvalidWhereOperatorError(SchemaError):
    """Raised when a WHERE key carries an operator outside the canonical set."""

    def __init__(self, operator: str, allowed: Iterable[str] = ()):
        self.operator = operator
        self.allowed = list(allowed)
        if self.allowed:
            choices = '", "'.join(self.allowed)
            message = f'Invalid operator ({operator}) must be one of: "{choices}"'
        else:
            message = f"Invalid operator ({operator})"
        super().__init__(message)


class SchemaLoadError(SchemaError):
    """Raised when the catalog query backing the schema snapshot fails."""

    def __init__(self, database_name: str, original_error: Exception):
        self.database_name = database_name
        self.original_error = original_error
        super().__init__(
            f"Failed to load schema for database `{database_name}`: {original_error}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "database_name": self.database_name,
                "original_error_type": type(self.original_error).__name__,
            }
        )
        return data


# ---------------------------------------------------------------------------
# Parameter errors
# ---------------------------------------------------------------------------


class ParameterError(TablewrightError):
    """Raised when clause parameters cannot be assembled or bound."""


class MissingParametersError(ParameterError):
    """Raised when placeholders in the SQL text have no matching parameter."""

    def __init__(self, missing: Iterable[str], query: str = ""):
        self.missing: List[str] = list(missing)
        self.query = query
        super().__init__(
            f"Missing parameters for placeholders: {', '.join(self.missing)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["missing"] = self.missing
        return data


class InvalidParameterValueTypeError(ParameterError):
    """Raised when a parameter value cannot be mapped to a bind type."""

    def __init__(self, name: str, value: Any):
        self.name = name
        self.value_type = type(value).__name__
        super().__init__(
            f"Invalid parameter value type for `{name}`: {self.value_type}"
        )


class MismatchedColumnNamesError(ParameterError):
    """Raised when rows of a multi-row insert do not share one column set."""

    def __init__(self, expected: Iterable[str] = (), actual: Iterable[str] = ()):
        self.expected = list(expected)
        self.actual = list(actual)
        if self.expected and self.actual:
            message = (
                f"Mismatched column names: ({', '.join(self.expected)}) "
                f"!= ({', '.join(self.actual)})"
            )
        else:
            message = "Mismatched column names"
        super().__init__(message)


class EmptyParamsError(ParameterError):
    """Raised when an operation requires parameters and received none."""


class EmptyQueryError(ParameterError):
    """Raised when an empty SQL string is submitted for execution."""

    def __init__(self, message: str = "Cannot execute an empty query"):
        super().__init__(message)


class PrimaryKeyConflictError(ParameterError):
    """Raised when an update names the primary key in both SET and WHERE."""

    def __init__(self, table: str, column: str):
        self.table = table
        self.column = column
        super().__init__(
            f"Primary key `{column}` of table `{table}` appears in both the "
            "update values and the where conditions"
        )


# ---------------------------------------------------------------------------
# Execution errors
# ---------------------------------------------------------------------------


class ExecutionError(TablewrightError):
    """Raised when the driver rejects a statement, carrying its code and message."""

    def __init__(
        self,
        message: str,
        code: Optional[Any] = None,
        query: Optional[str] = None,
    ):
        self.code = code
        self.query = query
        self.message = message
        full_message = f"Database error {code}: {message}" if code is not None else message
        super().__init__(full_message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["code"] = self.code
        return data


class DatabaseConnectionError(ExecutionError):
    """Raised when a connection cannot be established or has been closed."""


class StatementPrepareError(ExecutionError):
    """Raised when SQL text cannot be prepared into a statement handle."""


class BindError(ExecutionError):
    """Raised when a value cannot be bound to a named placeholder."""


class QueryExecutionError(ExecutionError):
    """Raised when a prepared statement fails to execute."""


# ---------------------------------------------------------------------------
# Transaction errors
# ---------------------------------------------------------------------------


class TransactionError(TablewrightError):
    """Base exception for transaction state machine failures."""


class TransactionInProgressError(TransactionError):
    """Raised when begin() is called while a transaction is active."""

    def __init__(
        self,
        message: str = "Unable to start new transaction while one is already in progress",
    ):
        super().__init__(message)


class TransactionNotInProgressError(TransactionError):
    """Raised when commit() or rollback() is called without an active transaction."""

    def __init__(self, action: str = "complete"):
        self.action = action
        super().__init__(f"Cannot {action} a transaction: none is in progress")


class TransactionBeginFailedError(TransactionError):
    """Raised when the driver fails to open a transaction."""


class TransactionCommitFailedError(TransactionError):
    """Raised when the driver fails to commit a transaction."""


class TransactionRollbackFailedError(TransactionError):
    """Raised when the driver fails to roll back a transaction."""


class TransactionImplicitCommitNotAllowedError(TransactionError):
    """Raised when a batch statement would implicitly commit the open transaction."""

    def __init__(self, category: str, statement: str, index: Optional[int] = None):
        self.category = category
        self.statement = statement
        self.index = index
        location = f" (statement {index})" if index is not None else ""
        super().__init__(
            f"Statement would cause an implicit commit [{category}]{location}: {statement}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"category": self.category, "index": self.index})
        return data


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class ConfigurationError(TablewrightError):
    """Raised when connection settings are incomplete or invalid."""


class MissingConnectionSettingError(ConfigurationError):
    """Raised when a required connection setting is empty."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"Missing database connection setting: {setting}")


__all__ = [
    "TablewrightError",
    "SchemaError",
    "InvalidSchemaSyntaxError",
    "InvalidTableError",
    "InvalidColumnError",
    "DuplicateTableError",
    "InvalidWhereOperatorError",
    "SchemaLoadError",
    "ParameterError",
    "MissingParametersError",
    "InvalidParameterValueTypeError",
    "MismatchedColumnNamesError",
    "EmptyParamsError",
    "EmptyQueryError",
    "PrimaryKeyConflictError",
    "ExecutionError",
    "DatabaseConnectionError",
    "StatementPrepareError",
    "BindError",
    "QueryExecutionError",
    "TransactionError",
    "TransactionInProgressError",
    "TransactionNotInProgressError",
    "TransactionBeginFailedError",
    "TransactionCommitFailedError",
    "TransactionRollbackFailedError",
    "TransactionImplicitCommitNotAllowedError",
    "ConfigurationError",
    "MissingConnectionSettingError",
]
