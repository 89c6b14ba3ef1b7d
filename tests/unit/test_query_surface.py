from sqlalchemy import Column, Integer, MetaData, String, Table

from typedrepo.db.query_surface import QuerySurface, table_name_for

from tests.records import LooseProduct, Product


def test_table_name_for_prefers_tablename_attribute():
    assert table_name_for(Product) == "Product"
    assert table_name_for(LooseProduct) == "product"


def test_find_table_is_case_insensitive_and_cached(surface):
    first = surface.find_table("product")
    assert first is not None
    assert first is surface.find_table("PRODUCT")
    assert first.column_names == ("id", "name", "price")
    assert first.primary_key.name == "id"
    assert first.primary_key.autoincrement is True
    assert first.primary_key.python_type is int


def test_find_table_absent_returns_none(surface):
    assert surface.find_table("nothing_here") is None


def test_find_table_without_primary_key(surface):
    tag = surface.find_table("Tag")
    assert tag.primary_key is None
    assert [c.name for c in tag.columns] == ["label", "weight"]


def test_find_table_reflects_live_schema(engine, metadata):
    surface = QuerySurface(engine)
    reflected = surface.find_table("product")
    assert reflected is not None
    assert reflected.name == "Product"
    assert reflected.primary_key.name == "id"


def test_clear_cache_picks_up_new_tables(engine, metadata):
    surface = QuerySurface(engine)
    assert surface.find_table("Invoice") is None
    extra = MetaData()
    Table("Invoice", extra, Column("number", Integer, primary_key=True), Column("memo", String(20)))
    extra.create_all(engine)
    surface.clear_cache()
    assert surface.find_table("invoice").primary_key.name == "number"


def test_select_builder_composes_statement(surface):
    table = surface.find_table("Product")
    query = surface.select(table).where_equals("name", "x").order_desc("price").paged(2, 10)
    sql = str(query.statement())
    assert "WHERE" in sql and "ORDER BY" in sql and "LIMIT" in sql and "OFFSET" in sql
    assert "count" in str(query.count_statement()).lower()
    assert "ORDER BY" not in str(query.count_statement())


def test_delete_builder_without_criteria_targets_all_rows(surface, products, seeded):
    table = surface.find_table("Product")
    assert surface.delete(table).execute() == 5


def test_find_table_caches_misses_until_cleared(surface, monkeypatch):
    calls = []
    original = surface._reflect_table

    def counting(name):
        calls.append(name)
        return original(name)

    monkeypatch.setattr(surface, "_reflect_table", counting)
    assert surface.find_table("Ghost") is None
    assert surface.find_table("ghost") is None
    assert calls == ["Ghost"]

    surface.clear_cache()
    assert surface.find_table("GHOST") is None
    assert calls == ["Ghost", "GHOST"]
