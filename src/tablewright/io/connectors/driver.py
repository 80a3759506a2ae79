"""
Connection-layer contract the query engine depends on.

The engine never talks to a DBAPI module directly; it sequences prepare,
bind, execute and fetch calls through an object satisfying Driver. The
SQLAlchemy-backed implementation lives in sqlalchemy_driver.py; tests supply
in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

if TYPE_CHECKING:
    from tablewright.infrastructure.sql.core.parameters import ParamType


@dataclass
class StatementHandle:
    """A prepared statement and the values bound to it so far."""

    sql: str
    placeholders: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)
    types: Dict[str, ParamType] = field(default_factory=dict)
    native: Any = None
    result: Any = None
    row_count: int = 0


class Driver(Protocol):
    """Protocol for the connection layer (prepare/bind/execute/fetch + transactions)."""

    def prepare(self, sql: str) -> StatementHandle: ...
    def bind(
        self, handle: StatementHandle, name: str, value: Any, param_type: ParamType
    ) -> bool: ...
    def execute(self, handle: StatementHandle) -> bool: ...
    def fetch_all(self, handle: StatementHandle) -> List[Dict[str, Any]]: ...
    def fetch_one(self, handle: StatementHandle) -> Optional[Dict[str, Any]]: ...
    def row_count(self, handle: StatementHandle) -> int: ...
    def last_insert_id(self) -> str: ...
    def begin_transaction(self) -> bool: ...
    def commit(self) -> bool: ...
    def rollback(self) -> bool: ...
    def in_transaction(self) -> bool: ...
    def close(self) -> None: ...
