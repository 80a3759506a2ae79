"""
Unit tests for the table registry and CREATE TABLE generation.
"""

import pytest

from tablewright.exceptions import InvalidSchemaSyntaxError
from tablewright.infrastructure.schema import (
    ColumnDef,
    ColumnType,
    IndexDef,
    TableRegistry,
    TableSchema,
    generate_create_table_ddl,
    generate_registry_ddl,
)


def _orders_schema():
    return TableSchema(
        name="orders",
        columns=[
            ColumnDef("id", ColumnType.INTEGER, nullable=False, auto_increment=True),
            ColumnDef("sku", ColumnType.STRING, nullable=False, max_length=64),
            ColumnDef("qty", ColumnType.INTEGER, default="0"),
            ColumnDef("price", ColumnType.DECIMAL, precision=10, scale=2),
            ColumnDef("total", ColumnType.DECIMAL, generated_as="`qty` * `price`"),
            ColumnDef("paid", ColumnType.BOOLEAN, default="0"),
        ],
        indexes=[IndexDef(["sku"], unique=True), IndexDef(["qty", "paid"], name="by_qty")],
    )


@pytest.mark.unit
class TestTableRegistry:
    def test_register_and_get(self):
        registry = TableRegistry()
        schema = registry.register(TableSchema(name="orders"))
        assert registry.get("orders") is schema
        assert "orders" in registry
        assert len(registry) == 1

    def test_duplicate_registration_raises(self):
        registry = TableRegistry([TableSchema(name="orders")])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(TableSchema(name="orders"))

    def test_missing_table_lists_available(self):
        registry = TableRegistry([TableSchema(name="orders")])
        with pytest.raises(KeyError, match="orders"):
            registry.get("invoices")

    def test_registration_order_is_iteration_order(self):
        registry = TableRegistry([TableSchema(name="b"), TableSchema(name="a")])
        assert registry.names() == ["b", "a"]
        assert [schema.name for schema in registry] == ["b", "a"]

    def test_unregister(self):
        registry = TableRegistry([TableSchema(name="orders")])
        registry.unregister("orders")
        registry.unregister("orders")
        assert "orders" not in registry


@pytest.mark.unit
class TestCreateTableDDL:
    def test_full_statement(self):
        ddl = generate_create_table_ddl(_orders_schema())
        assert ddl == (
            "CREATE TABLE IF NOT EXISTS `orders` (\n"
            "  `id` INT NOT NULL AUTO_INCREMENT,\n"
            "  `sku` VARCHAR(64) NOT NULL,\n"
            "  `qty` INT DEFAULT 0,\n"
            "  `price` DECIMAL(10, 2),\n"
            "  `total` DECIMAL(18, 4) GENERATED ALWAYS AS (`qty` * `price`) STORED,\n"
            "  `paid` TINYINT(1) DEFAULT 0,\n"
            "  PRIMARY KEY (`id`),\n"
            "  UNIQUE KEY `idx_orders_sku` (`sku`),\n"
            "  KEY `by_qty` (`qty`, `paid`)\n"
            ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"
        )

    def test_without_if_not_exists(self):
        ddl = generate_create_table_ddl(_orders_schema(), if_not_exists=False)
        assert ddl.startswith("CREATE TABLE `orders` (")

    def test_table_without_primary_key(self):
        schema = TableSchema(
            name="tags", columns=[ColumnDef("label", ColumnType.TEXT)], primary_key=None
        )
        ddl = generate_create_table_ddl(schema)
        assert "PRIMARY KEY" not in ddl
        assert "`label` TEXT" in ddl

    @pytest.mark.parametrize(
        "column_type, expected",
        [
            (ColumnType.BIGINT, "BIGINT"),
            (ColumnType.DATE, "DATE"),
            (ColumnType.DATETIME, "DATETIME"),
            (ColumnType.JSON, "JSON"),
            (ColumnType.STRING, "VARCHAR(255)"),
        ],
    )
    def test_column_types(self, column_type, expected):
        schema = TableSchema(name="t", columns=[ColumnDef("c", column_type)], primary_key=None)
        assert f"`c` {expected}" in generate_create_table_ddl(schema)

    def test_unsafe_column_name_raises(self):
        schema = TableSchema(name="t", columns=[ColumnDef("c`; DROP", ColumnType.TEXT)])
        with pytest.raises(InvalidSchemaSyntaxError):
            generate_create_table_ddl(schema)

    def test_registry_ddl_in_order(self):
        registry = TableRegistry([_orders_schema(), TableSchema(name="tags", primary_key=None)])
        statements = generate_registry_ddl(registry)
        assert [s.split("`")[1] for s in statements] == ["orders", "tags"]
