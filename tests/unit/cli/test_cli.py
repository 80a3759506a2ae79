"""
Tests for the tablewright command-line entry point.
"""

import textwrap

import pytest

from tablewright.cli.__main__ import load_registry, main
from tablewright.engine import QueryEngine


@pytest.mark.unit
class TestScreenCommand:
    def test_reports_hazards(self, tmp_path, capsys):
        script = tmp_path / "0042.sql"
        script.write_text(
            "UPDATE users SET status = 'x';\n"
            "ALTER TABLE users ADD COLUMN nickname VARCHAR(20);\n"
            "LOCK TABLES users WRITE;\n",
            encoding="utf-8",
        )

        assert main(["screen", str(script)]) == 1

        out = capsys.readouterr().out.splitlines()
        assert out == [
            f"{script}:2: implicit commit [DDL] ALTER TABLE users ADD COLUMN nickname VARCHAR(20)",
            f"{script}:3: implicit commit [transaction control or locking] LOCK TABLES users WRITE",
        ]

    def test_clean_file(self, tmp_path, capsys):
        script = tmp_path / "clean.sql"
        script.write_text("SELECT 1;\nDELETE FROM t WHERE id = 1;\n", encoding="utf-8")

        assert main(["screen", str(script)]) == 0
        assert "no implicit-commit statements" in capsys.readouterr().out

    def test_missing_file_is_an_error(self, tmp_path, capsys):
        assert main(["screen", str(tmp_path / "absent.sql")]) == 2
        assert "Error:" in capsys.readouterr().err


@pytest.mark.unit
class TestSchemaCommand:
    @pytest.fixture(autouse=True)
    def _fake_engine(self, monkeypatch, fake_driver):
        monkeypatch.setattr(
            QueryEngine,
            "from_settings",
            classmethod(lambda cls, *a, **k: cls(driver=fake_driver, database_name="shop")),
        )

    def test_prints_one_table(self, capsys):
        assert main(["schema", "orders"]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "orders",
            "  id: int",
            "  sku: varchar",
            "  qty: int",
            "  total: decimal (generated)",
        ]

    def test_prints_all_tables_sorted(self, capsys):
        assert main(["schema"]) == 0
        tables = [line for line in capsys.readouterr().out.splitlines() if not line.startswith(" ")]
        assert tables == ["orders", "tags", "users"]

    def test_unknown_table(self, capsys):
        assert main(["schema", "nope"]) == 1
        assert "Unknown table: nope" in capsys.readouterr().err


@pytest.mark.unit
class TestDdlCommand:
    @pytest.fixture
    def registry_module(self, tmp_path, monkeypatch):
        (tmp_path / "tw_cli_tables.py").write_text(
            textwrap.dedent(
                """
                from tablewright.infrastructure.schema import (
                    ColumnDef,
                    ColumnType,
                    TableRegistry,
                    TableSchema,
                )

                registry = TableRegistry(
                    [
                        TableSchema(
                            name="invoices",
                            columns=[ColumnDef("id", ColumnType.INTEGER, nullable=False)],
                        )
                    ]
                )
                not_a_registry = {"invoices": None}
                """
            ),
            encoding="utf-8",
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        return "tw_cli_tables"

    def test_prints_create_statements(self, registry_module, capsys):
        assert main(["ddl", f"{registry_module}:registry"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("CREATE TABLE IF NOT EXISTS `invoices` (")
        assert "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;" in out

    def test_default_attribute_is_registry(self, registry_module):
        assert load_registry(registry_module).names() == ["invoices"]

    def test_wrong_attribute_type(self, registry_module, capsys):
        assert main(["ddl", f"{registry_module}:not_a_registry"]) == 2
        assert "is not a TableRegistry" in capsys.readouterr().err

    def test_unknown_module(self, capsys):
        assert main(["ddl", "tw_no_such_module:registry"]) == 2
