"""DDL SQL generation for registered table definitions (MySQL)."""

from __future__ import annotations

from typing import List, Optional

from tablewright.infrastructure.sql.core.identifier import validate_identifier
from tablewright.infrastructure.sql.dialects.mysql import MySQLDialect

from .core import ColumnDef, ColumnType, IndexDef, TableSchema
from .registry import TableRegistry


def _column_type_to_sql(col: ColumnDef) -> str:
    """Convert a ColumnDef to a MySQL type definition."""
    if col.column_type == ColumnType.STRING:
        length = col.max_length or 255
        return f"VARCHAR({length})"
    if col.column_type == ColumnType.TEXT:
        return "TEXT"
    if col.column_type == ColumnType.INTEGER:
        return "INT"
    if col.column_type == ColumnType.BIGINT:
        return "BIGINT"
    if col.column_type == ColumnType.DECIMAL:
        precision = col.precision or 18
        scale = col.scale or 4
        return f"DECIMAL({precision}, {scale})"
    if col.column_type == ColumnType.BOOLEAN:
        return "TINYINT(1)"
    if col.column_type == ColumnType.DATE:
        return "DATE"
    if col.column_type == ColumnType.DATETIME:
        return "DATETIME"
    if col.column_type == ColumnType.JSON:
        return "JSON"
    return "VARCHAR(255)"


def _column_line(col: ColumnDef, dialect: MySQLDialect) -> str:
    parts = [dialect.quote(validate_identifier(col.name)), _column_type_to_sql(col)]
    if col.generated_as:
        parts.append(f"GENERATED ALWAYS AS ({col.generated_as}) STORED")
    if not col.nullable:
        parts.append("NOT NULL")
    if col.auto_increment:
        parts.append("AUTO_INCREMENT")
    if col.default is not None and not col.generated_as:
        parts.append(f"DEFAULT {col.default}")
    return " ".join(parts)


def _index_line(schema: TableSchema, idx: IndexDef, dialect: MySQLDialect) -> str:
    validated = [validate_identifier(c) for c in idx.columns]
    index_name = validate_identifier(idx.name or f"idx_{schema.name}_{'_'.join(validated)}")
    cols_str = ", ".join(dialect.quote(c) for c in validated)
    kind = "UNIQUE KEY" if idx.unique else "KEY"
    return f"{kind} {dialect.quote(index_name)} ({cols_str})"


def generate_create_table_ddl(
    schema: TableSchema,
    if_not_exists: bool = True,
    dialect: Optional[MySQLDialect] = None,
) -> str:
    """
    Generate the CREATE TABLE statement for one table definition.

    Indexes are declared inline since MySQL has no CREATE INDEX IF NOT EXISTS.

    Raises:
        InvalidSchemaSyntaxError: If a table, column or index name is not a
            safe identifier
    """
    dialect = dialect or MySQLDialect()
    table = validate_identifier(schema.name)

    lines: List[str] = [_column_line(col, dialect) for col in schema.columns]
    if schema.primary_key:
        primary_key = dialect.quote(validate_identifier(schema.primary_key))
        lines.append(f"PRIMARY KEY ({primary_key})")
    for idx in schema.indexes:
        lines.append(_index_line(schema, idx, dialect))

    exists_clause = "IF NOT EXISTS " if if_not_exists else ""
    body = ",\n  ".join(lines)
    return (
        f"CREATE TABLE {exists_clause}{dialect.qualify(table)} (\n  {body}\n) "
        f"ENGINE={schema.engine} DEFAULT CHARSET={schema.charset}"
    )


def generate_registry_ddl(
    registry: TableRegistry, dialect: Optional[MySQLDialect] = None
) -> List[str]:
    """CREATE TABLE statements for every registered table, in registration order."""
    return [generate_create_table_ddl(schema, dialect=dialect) for schema in registry]


__all__ = [
    "generate_create_table_ddl",
    "generate_registry_ddl",
]
