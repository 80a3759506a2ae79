"""Schema validation cache and table-definition registry.

The cache answers "does this table/column exist" from the database catalog;
the registry declares the tables a deployment expects to exist.
"""

from .cache import SchemaCache, SchemaSnapshot
from .core import ColumnDef, ColumnType, IndexDef, TableSchema
from .ddl_generator import generate_create_table_ddl, generate_registry_ddl
from .registry import TableRegistry

__all__ = [
    "SchemaCache",
    "SchemaSnapshot",
    "ColumnType",
    "ColumnDef",
    "IndexDef",
    "TableSchema",
    "TableRegistry",
    "generate_create_table_ddl",
    "generate_registry_ddl",
]
