"""
Infrastructure layer for tablewright.

Holds the SQL generation core, the schema cache and table registry, and the
transaction coordinator.
"""
