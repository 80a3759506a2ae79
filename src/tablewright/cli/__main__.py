"""
Command-line entry point for tablewright.

Usage:
    python -m tablewright.cli <command> [options]

Available commands:
    screen  - Report statements in a SQL file that would implicitly commit
    schema  - Print the tables/columns the schema cache sees
    ddl     - Print CREATE TABLE statements for a table registry

Examples:
    python -m tablewright.cli screen migrations/0042.sql
    python -m tablewright.cli schema orders
    python -m tablewright.cli ddl myapp.tables:registry
"""

import argparse
import importlib
import sys
from pathlib import Path
from typing import List, Optional

from tablewright.exceptions import TablewrightError
from tablewright.infrastructure.schema.ddl_generator import generate_registry_ddl
from tablewright.infrastructure.schema.registry import TableRegistry
from tablewright.infrastructure.transaction.implicit_commit import (
    classify_statement,
    split_statements,
)


def _screen(path: str) -> int:
    sql = Path(path).read_text(encoding="utf-8")
    hazards = 0
    for index, statement in enumerate(split_statements(sql), start=1):
        category = classify_statement(statement)
        if category is None:
            continue
        hazards += 1
        first_line = statement.splitlines()[0] if statement else ""
        print(f"{path}:{index}: implicit commit [{category}] {first_line}")

    if hazards:
        print(f"{hazards} statement(s) would implicitly commit", file=sys.stderr)
        return 1
    print(f"{path}: no implicit-commit statements")
    return 0


def _schema(table: Optional[str]) -> int:
    from tablewright.engine import QueryEngine

    with QueryEngine.from_settings() as engine:
        snapshot = engine.schema.snapshot
        tables = [table] if table else sorted(snapshot.tables)
        for name in tables:
            if not engine.is_valid_schema(name):
                print(f"Unknown table: {name}", file=sys.stderr)
                return 1
            print(name)
            generated = set(snapshot.generated_columns.get(name, []))
            for column, data_type in snapshot.tables[name].items():
                marker = " (generated)" if column in generated else ""
                print(f"  {column}: {data_type}{marker}")
    return 0


def load_registry(target: str) -> TableRegistry:
    """Resolve ``module:attribute`` to a TableRegistry."""
    module_name, _, attribute = target.partition(":")
    module = importlib.import_module(module_name)
    registry = getattr(module, attribute or "registry")
    if not isinstance(registry, TableRegistry):
        raise TypeError(f"{target} is not a TableRegistry")
    return registry


def _ddl(target: str) -> int:
    registry = load_registry(target)
    for statement in generate_registry_ddl(registry):
        print(f"{statement};\n")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point with subcommand routing.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = argparse.ArgumentParser(
        prog="tablewright.cli",
        description="tablewright CLI - schema and transaction tooling",
    )
    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        required=True,
        help="Command to execute",
    )

    screen_parser = subparsers.add_parser(
        "screen", help="Report statements that would implicitly commit"
    )
    screen_parser.add_argument("file", help="SQL file to screen")

    schema_parser = subparsers.add_parser(
        "schema", help="Print tables and columns from the database catalog"
    )
    schema_parser.add_argument("table", nargs="?", help="Only show this table")

    ddl_parser = subparsers.add_parser(
        "ddl", help="Print CREATE TABLE statements for a table registry"
    )
    ddl_parser.add_argument(
        "registry", help="Registry location as module:attribute"
    )

    args = parser.parse_args(argv)

    try:
        if args.command == "screen":
            return _screen(args.file)
        if args.command == "schema":
            return _schema(args.table)
        if args.command == "ddl":
            return _ddl(args.registry)
    except (TablewrightError, OSError, ImportError, AttributeError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
