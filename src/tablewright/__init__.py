"""
tablewright - schema-validated query construction for MySQL.

Builds single-table CRUD statements from plain mappings, validating every
identifier against the live catalog and binding every value as a parameter,
and coordinates transactions that refuse statements which would implicitly
commit.
"""

__version__ = "0.1.0"

from tablewright.config.settings import DatabaseSettings, Settings, get_settings
from tablewright.engine import QueryEngine
from tablewright.infrastructure.schema import (
    ColumnDef,
    ColumnType,
    IndexDef,
    TableRegistry,
    TableSchema,
)
from tablewright.infrastructure.transaction import (
    BatchResult,
    IncrementResult,
    detect_implicit_commit,
)

__all__ = [
    "__version__",
    "DatabaseSettings",
    "Settings",
    "get_settings",
    "QueryEngine",
    "ColumnDef",
    "ColumnType",
    "IndexDef",
    "TableRegistry",
    "TableSchema",
    "BatchResult",
    "IncrementResult",
    "detect_implicit_commit",
]
