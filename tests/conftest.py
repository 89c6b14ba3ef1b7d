import pytest
from sqlalchemy import Column, Float, Integer, MetaData, String, Table, create_engine
from sqlalchemy.pool import StaticPool

from typedrepo.db.providers import DataProvider
from typedrepo.db.query_surface import QuerySurface
from typedrepo.db.repositories import Repository
from typedrepo.utils.settings import refresh_settings_cache

from tests.records import Product

_SETTINGS_VARS = [
    "TYPEDREPO_DATABASE_URL",
    "DATABASE_URL",
    "TYPEDREPO_SQL_ECHO",
    "TYPEDREPO_BATCH_TRANSACTIONAL",
    "TYPEDREPO_INLINE_IDENTITY",
    "TYPEDREPO_LOG_LEVEL",
]


def build_metadata() -> MetaData:
    metadata = MetaData()
    Table(
        "Product",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(100), nullable=False),
        Column("price", Float, nullable=False, default=0.0),
    )
    # no primary key on purpose
    Table(
        "Tag",
        metadata,
        Column("label", String(50), nullable=False),
        Column("weight", Integer, nullable=False),
    )
    return metadata


@pytest.fixture(autouse=True)
def _clean_settings_env(monkeypatch):
    for var in _SETTINGS_VARS:
        monkeypatch.delenv(var, raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def metadata(engine):
    md = build_metadata()
    md.create_all(engine)
    return md


@pytest.fixture
def provider(engine, metadata):
    return DataProvider(engine)


@pytest.fixture
def surface(provider, metadata):
    return QuerySurface(provider, metadata=metadata)


@pytest.fixture
def products(surface):
    return Repository(Product, surface)


@pytest.fixture
def seeded(products):
    """Five products with names sharing prefixes, inserted in id order."""
    rows = [
        Product(name="apple", price=1.5),
        Product(name="apricot", price=3.0),
        Product(name="banana", price=0.5),
        Product(name="blueberry", price=4.25),
        Product(name="cherry", price=2.0),
    ]
    for row in rows:
        products.add(row)
    return rows
