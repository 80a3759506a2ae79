"""Clause and statement builders."""

from .clauses import ClauseBuilder, ClauseFragment
from .insert import InsertBuilder

__all__ = ["ClauseBuilder", "ClauseFragment", "InsertBuilder"]
