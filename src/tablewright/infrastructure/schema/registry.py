"""Table definition registry.

Each module that owns tables builds (or extends) a TableRegistry and hands it
to the QueryEngine; nothing is discovered by scanning method names.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .core import TableSchema


class TableRegistry:
    """Ordered collection of TableSchema definitions keyed by table name."""

    def __init__(self, schemas: Optional[Iterable[TableSchema]] = None) -> None:
        self._tables: Dict[str, TableSchema] = {}
        for schema in schemas or ():
            self.register(schema)

    def register(self, schema: TableSchema) -> TableSchema:
        """Register a table definition; registration order is creation order."""
        if schema.name in self._tables:
            raise ValueError(
                f"Table '{schema.name}' is already registered. "
                "Use a different name or unregister first."
            )
        self._tables[schema.name] = schema
        return schema

    def unregister(self, name: str) -> None:
        self._tables.pop(name, None)

    def get(self, name: str) -> TableSchema:
        """Retrieve a table definition by name."""
        if name not in self._tables:
            available = list(self._tables.keys())
            raise KeyError(f"Table '{name}' not found in registry. Available: {available}")
        return self._tables[name]

    def names(self) -> List[str]:
        """Registered table names in registration order."""
        return list(self._tables)

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __iter__(self) -> Iterator[TableSchema]:
        return iter(list(self._tables.values()))

    def __len__(self) -> int:
        return len(self._tables)


__all__ = ["TableRegistry"]
