"""
Unit tests for the clause builders and the row-set INSERT builder.

The schema comes from FakeDriver's default catalog: ``users`` (primary key
``id``, generated ``full_name``, and a real column named ``where_age``),
``orders`` (generated ``total``) and ``tags`` (no primary key).
"""

import pytest

from tablewright.exceptions import (
    EmptyParamsError,
    InvalidColumnError,
    InvalidTableError,
    MismatchedColumnNamesError,
    ParameterError,
    PrimaryKeyConflictError,
)
from tablewright.infrastructure.schema.cache import SchemaCache
from tablewright.infrastructure.sql.dialects.mysql import MySQLDialect
from tablewright.infrastructure.sql.executor import StatementExecutor
from tablewright.infrastructure.sql.operations.clauses import ClauseBuilder, ClauseFragment
from tablewright.infrastructure.sql.operations.insert import InsertBuilder


@pytest.fixture
def builder(schema_cache):
    return ClauseBuilder(schema_cache)


@pytest.fixture
def inserter(schema_cache):
    return InsertBuilder(schema_cache)


@pytest.mark.unit
class TestValuesClause:
    def test_emits_placeholder_per_column(self, builder):
        fragment = builder.values("users", {"name": "ann", "age": 30})
        assert fragment.sql == "VALUES (:name, :age)"
        assert fragment.params == {"name": "ann", "age": 30}

    def test_skips_generated_columns(self, builder):
        fragment = builder.values("users", {"name": "ann", "full_name": "Ann X"})
        assert fragment.sql == "VALUES (:name)"
        assert "full_name" not in fragment.params

    def test_empty_input_yields_empty_fragment(self, builder):
        fragment = builder.values("users", {})
        assert fragment == ClauseFragment()
        assert not fragment

    def test_unknown_column_raises(self, builder):
        with pytest.raises(InvalidColumnError) as exc_info:
            builder.values("users", {"nickname": "x"})
        assert "nickname" in str(exc_info.value)


@pytest.mark.unit
class TestSetClause:
    def test_assignments(self, builder):
        fragment, where = builder.set("users", {"name": "bo", "age": 3})
        assert fragment.sql == "SET `name` = :name, `age` = :age"
        assert fragment.params == {"name": "bo", "age": 3}
        assert where == {}

    def test_primary_key_routed_to_where(self, builder):
        fragment, where = builder.set("users", {"id": 5, "name": "bo"}, {"status": "x"})
        assert fragment.sql == "SET `name` = :name"
        assert "id" not in fragment.params
        assert where == {"status": "x", "id": 5}

    @pytest.mark.parametrize("where", [{"id": 9}, {"id >": 9}])
    def test_primary_key_in_both_raises(self, builder, where):
        with pytest.raises(PrimaryKeyConflictError):
            builder.set("users", {"id": 5, "name": "bo"}, where)

    def test_generated_columns_skipped(self, builder):
        fragment, _ = builder.set("users", {"full_name": "x", "age": 1})
        assert fragment.sql == "SET `age` = :age"

    def test_unknown_column_raises(self, builder):
        with pytest.raises(InvalidColumnError):
            builder.set("users", {"nickname": "x"})


@pytest.mark.unit
class TestWhereClause:
    def test_conditions_joined_by_conjunction(self, builder):
        fragment = builder.where("users", {"status": "active", "age >": 18}, "OR")
        assert fragment.sql == "WHERE `status` = :status OR `age` > :age"
        assert fragment.params == {"status": "active", "age": 18}

    def test_unknown_conjunction_means_and(self, builder):
        fragment = builder.where("users", {"status": "a", "age": 1}, "nonsense")
        assert fragment.sql == "WHERE `status` = :status AND `age` = :age"

    def test_empty_where_yields_empty_fragment(self, builder):
        assert builder.where("users", {}) == ClauseFragment()

    def test_reserved_name_avoids_set_params_and_real_columns(self, builder):
        fragment = builder.where("users", {"age": 5}, reserved={"age"})
        # "where_age" is a real column of users, so the counter kicks in
        assert fragment.sql == "WHERE `age` = :where_age_1"
        assert fragment.params == {"where_age_1": 5}

    def test_same_column_twice_gets_distinct_params(self, builder):
        fragment = builder.where("users", {"age >": 18, "age <": 65})
        assert fragment.sql == "WHERE `age` > :age AND `age` < :where_age_1"
        assert fragment.params == {"age": 18, "where_age_1": 65}

    def test_is_null_literal(self, builder):
        fragment = builder.where("users", {"name IS": None, "status IS NOT": True})
        assert fragment.sql == "WHERE `name` IS NULL AND `status` IS NOT TRUE"
        assert fragment.params == {}

    def test_is_with_scalar_uses_placeholder(self, builder):
        fragment = builder.where("users", {"name IS": "x"})
        assert fragment.sql == "WHERE `name` IS :name"

    def test_in_expands_sequence(self, builder):
        fragment = builder.where("users", {"id IN": [1, 2, 3]})
        assert fragment.sql == "WHERE `id` IN (:id_0, :id_1, :id_2)"
        assert fragment.params == {"id_0": 1, "id_1": 2, "id_2": 3}

    def test_between_expands_pair(self, builder):
        fragment = builder.where("users", {"age BETWEEN": (18, 30)})
        assert fragment.sql == "WHERE `age` BETWEEN :age_0 AND :age_1"
        assert fragment.params == {"age_0": 18, "age_1": 30}

    def test_between_needs_two_values(self, builder):
        with pytest.raises(ParameterError):
            builder.where("users", {"age BETWEEN": [18]})

    def test_scalar_in_is_parenthesized(self, builder):
        fragment = builder.where("users", {"id IN": 7})
        assert fragment.sql == "WHERE `id` IN (:id)"
        assert fragment.params == {"id": 7}

    def test_scalar_between_raises(self, builder):
        with pytest.raises(ParameterError):
            builder.where("users", {"age BETWEEN": 18})

    def test_empty_in_list_raises(self, builder):
        with pytest.raises(EmptyParamsError):
            builder.where("users", {"id IN": []})

    def test_unknown_column_raises(self, builder):
        with pytest.raises(InvalidColumnError):
            builder.where("users", {"nickname": "x"})


@pytest.mark.unit
class TestOrderByAndLimit:
    def test_order_by_normalizes_direction(self, builder):
        fragment = builder.order_by("users", {"age": "desc", "name": "sideways"})
        assert fragment.sql == "ORDER BY `age` DESC, `name` ASC"

    def test_order_by_unknown_column_raises(self, builder):
        with pytest.raises(InvalidColumnError):
            builder.order_by("users", {"nickname": "ASC"})

    @pytest.mark.parametrize(
        "offset, limit, expected",
        [(0, 10, "LIMIT 10"), (5, 10, "LIMIT 5, 10"), (5, 0, ""), (0, 0, ""), (-1, 3, "LIMIT 3")],
    )
    def test_limit(self, offset, limit, expected):
        assert ClauseBuilder.limit(offset, limit).sql == expected


@pytest.mark.unit
class TestInsertBuilder:
    def test_multi_row_insert(self, inserter):
        fragment = inserter.build(
            "users", [{"name": "a", "age": 1}, {"age": 2, "name": "b"}], upsert=False
        )
        assert fragment.sql == (
            "INSERT INTO `users` (`name`, `age`) VALUES (:name_0, :age_0), (:name_1, :age_1)"
        )
        assert fragment.params == {"name_0": "a", "age_0": 1, "name_1": "b", "age_1": 2}

    def test_row_suffixes_for_single_column_table(self, schema_cache):
        fragment = InsertBuilder(schema_cache).build(
            "tags", [{"label": 1}, {"label": 3}], upsert=False
        )
        assert fragment.params == {"label_0": 1, "label_1": 3}

    def test_single_row_uses_plain_names(self, inserter):
        fragment = inserter.build("users", {"name": "a", "age": 1}, upsert=False)
        assert fragment.sql == "INSERT INTO `users` (`name`, `age`) VALUES (:name, :age)"
        assert fragment.params == {"name": "a", "age": 1}

    def test_upsert_updates_non_key_columns(self, inserter):
        fragment = inserter.build("users", {"id": 1, "name": "a"})
        assert fragment.sql.endswith(
            "AS `new` ON DUPLICATE KEY UPDATE `users`.`name` = `new`.`name`"
        )

    def test_upsert_key_only_row_maps_key_onto_itself(self, inserter):
        fragment = inserter.build("users", {"id": 1})
        assert fragment.sql.endswith("ON DUPLICATE KEY UPDATE `users`.`id` = `new`.`id`")

    def test_upsert_without_primary_key_updates_every_column(self, inserter):
        fragment = inserter.build("tags", {"label": "x"})
        assert fragment.sql.endswith("`tags`.`label` = `new`.`label`")

    def test_generated_columns_skipped(self, inserter):
        fragment = inserter.build("users", {"name": "a", "full_name": "x"}, upsert=False)
        assert fragment.sql == "INSERT INTO `users` (`name`) VALUES (:name)"

    def test_only_generated_columns_raises(self, inserter):
        with pytest.raises(EmptyParamsError):
            inserter.build("users", {"full_name": "x"})

    def test_mismatched_columns_raise(self, inserter):
        with pytest.raises(MismatchedColumnNamesError):
            inserter.build("users", [{"name": "a"}, {"age": 2}])

    @pytest.mark.parametrize("rows", [[], [{}], {}])
    def test_empty_rows_raise(self, inserter, rows):
        with pytest.raises(EmptyParamsError):
            inserter.build("users", rows)

    def test_unknown_table_raises(self, inserter):
        with pytest.raises(InvalidTableError):
            inserter.build("nope", {"a": 1})

    def test_unknown_column_raises(self, inserter):
        with pytest.raises(InvalidColumnError):
            inserter.build("users", {"nickname": "x"})


@pytest.fixture
def people_cache(make_driver):
    driver = make_driver(
        tables={
            "people": {"id": "int", "first name": "varchar", "first_name": "varchar"},
            "events": {"id": "int", "created_at": "timestamp", "slug": "varchar"},
        },
        generated={"events": ["slug"]},
        primary_keys={"people": "id", "events": "id"},
        extras={
            "events": {
                "created_at": "DEFAULT_GENERATED on update CURRENT_TIMESTAMP",
                "slug": "VIRTUAL GENERATED",
            }
        },
    )
    return SchemaCache(StatementExecutor(driver), "shop")


@pytest.mark.unit
class TestExpressionDefaultColumns:
    def test_default_generated_is_not_a_generated_column(self, people_cache):
        assert not people_cache.is_generated_column("events", "created_at")
        assert people_cache.is_generated_column("events", "slug")

    @pytest.mark.parametrize(
        "extra, expected",
        [
            ("", False),
            (None, False),
            ("auto_increment", False),
            ("DEFAULT_GENERATED", False),
            ("DEFAULT_GENERATED on update CURRENT_TIMESTAMP", False),
            ("VIRTUAL GENERATED", True),
            ("stored generated", True),
        ],
    )
    def test_dialect_reads_extra(self, extra, expected):
        assert MySQLDialect().is_generated(extra) is expected

    def test_insert_keeps_expression_default_column(self, people_cache):
        fragment = InsertBuilder(people_cache).build(
            "events", {"id": 1, "created_at": "2020-01-01", "slug": "x"}, upsert=False
        )
        assert fragment.sql == (
            "INSERT INTO `events` (`id`, `created_at`) VALUES (:id, :created_at)"
        )
        assert fragment.params == {"id": 1, "created_at": "2020-01-01"}

    def test_update_sets_expression_default_column(self, people_cache):
        fragment, _ = ClauseBuilder(people_cache).set("events", {"created_at": "2020-01-01"})
        assert fragment.sql == "SET `created_at` = :created_at"


@pytest.mark.unit
class TestColumnsWithWhitespace:
    def test_values_keep_both_columns(self, people_cache):
        fragment = ClauseBuilder(people_cache).values(
            "people", {"first name": "A", "first_name": "B"}
        )
        assert fragment.sql == "VALUES (:first_name, :values_first_name)"
        assert fragment.params == {"first_name": "A", "values_first_name": "B"}

    def test_set_keeps_both_columns(self, people_cache):
        fragment, _ = ClauseBuilder(people_cache).set(
            "people", {"first name": "A", "first_name": "B"}
        )
        assert fragment.sql == "SET `first name` = :first_name, `first_name` = :set_first_name"
        assert fragment.params == {"first_name": "A", "set_first_name": "B"}

    def test_single_row_insert_keeps_both_values(self, people_cache):
        fragment = InsertBuilder(people_cache).build(
            "people", {"first name": "A", "first_name": "B"}, upsert=False
        )
        assert sorted(fragment.params.values()) == ["A", "B"]

    def test_multi_row_insert_keeps_both_values(self, people_cache):
        fragment = InsertBuilder(people_cache).build(
            "people",
            [{"first name": "A", "first_name": "B"}, {"first name": "C", "first_name": "D"}],
            upsert=False,
        )
        assert fragment.params == {
            "first_name_0": "A",
            "row_first_name_0": "B",
            "first_name_1": "C",
            "row_first_name_1": "D",
        }
        assert fragment.sql.endswith(
            "VALUES (:first_name_0, :row_first_name_0), (:first_name_1, :row_first_name_1)"
        )
