import pytest
from sqlalchemy import literal

from typedrepo.db.exceptions import QueryError, SchemaError, TranslationError
from typedrepo.db.query import translate_predicate, translate_selector


@pytest.fixture
def table(surface):
    return surface.find_table("Product")


def test_translate_callable(table):
    expr = translate_predicate(lambda c: c.price > 3, table)
    assert "price" in str(expr)


def test_translate_mapping_builds_conjunction(table):
    expr = translate_predicate({"name": "a", "price": 1.0}, table)
    sql = str(expr)
    assert "name" in sql and "price" in sql and "AND" in sql


def test_translate_passes_sql_expressions_through(table):
    expr = table.table.c.id == 1
    assert translate_predicate(expr, table) is expr


@pytest.mark.parametrize(
    "predicate",
    [
        lambda c: c.unknown == 1,
        lambda c: 1 / 0,
        lambda c: False,
        {"unknown": 1},
        {},
        42,
    ],
)
def test_translation_failures(table, predicate):
    with pytest.raises(TranslationError):
        translate_predicate(predicate, table)


def test_translate_selector(table):
    assert translate_selector(lambda c: c.name, table) is table.table.c.name
    with pytest.raises(TranslationError):
        translate_selector(lambda c: "name", table)
    assert translate_selector(lambda c: literal(1), table) is not None


def test_unknown_column_in_builder(surface, table):
    with pytest.raises(SchemaError):
        surface.select(table).order_asc("nope")


@pytest.mark.parametrize("index, size", [(0, 0), (0, -3), (-1, 10)])
def test_paged_validation(surface, table, index, size):
    with pytest.raises(QueryError):
        surface.select(table).paged(index, size)


def test_column_lookup_is_case_insensitive(table):
    assert table.column("NAME") is table.table.c.name
