"""
SQL module for schema-validated statement generation.

This module provides identifier validation, WHERE-key parsing, parameter
reconciliation, MySQL statement assembly and the clause builders used by the
query engine.
"""

from .core.identifier import qualify_table, quote_identifier, validate_identifier
from .core.operators import parse_where_operator, validate_conjunction
from .core.parameters import ParamType, infer_parameter_type, reconcile_parameters
from .dialects.mysql import MySQLDialect
from .executor import StatementExecutor, StatementResult
from .operations.clauses import ClauseBuilder, ClauseFragment
from .operations.insert import InsertBuilder

__all__ = [
    "validate_identifier",
    "quote_identifier",
    "qualify_table",
    "parse_where_operator",
    "validate_conjunction",
    "ParamType",
    "infer_parameter_type",
    "reconcile_parameters",
    "MySQLDialect",
    "StatementExecutor",
    "StatementResult",
    "ClauseBuilder",
    "ClauseFragment",
    "InsertBuilder",
]
