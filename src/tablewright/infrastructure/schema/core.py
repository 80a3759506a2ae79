"""Table definition types for the explicit table registry.

Modules that own tables declare them as TableSchema values and register them
on a TableRegistry; the engine creates whatever is missing at start-up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ColumnType(Enum):
    """Supported column types for table definitions."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BIGINT = "bigint"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    JSON = "json"


@dataclass
class ColumnDef:
    """Definition of a single column."""

    name: str
    column_type: ColumnType
    nullable: bool = True
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default: Optional[str] = None
    auto_increment: bool = False
    # SQL expression for a STORED generated column
    generated_as: Optional[str] = None
    description: str = ""


@dataclass
class IndexDef:
    """Definition of a secondary index."""

    columns: List[str]
    unique: bool = False
    name: Optional[str] = None


@dataclass
class TableSchema:
    """Complete definition of one table."""

    name: str
    columns: List[ColumnDef] = field(default_factory=list)
    primary_key: Optional[str] = "id"
    indexes: List[IndexDef] = field(default_factory=list)
    engine: str = "InnoDB"
    charset: str = "utf8mb4"
    description: str = ""

    def column(self, name: str) -> Optional[ColumnDef]:
        return next((c for c in self.columns if c.name == name), None)


__all__ = [
    "ColumnType",
    "ColumnDef",
    "IndexDef",
    "TableSchema",
]
