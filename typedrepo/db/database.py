"""
Engine construction from environment configuration.

In-memory SQLite URLs get a StaticPool so every connection sees the same
database (and therefore the same schema).
"""
from typing import Optional

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from typedrepo.db.providers import DataProvider
from typedrepo.db.query_surface import QuerySurface
from typedrepo.utils.settings import get_settings


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/").endswith("sqlite:"))


def _engine_kwargs(url: str, echo: bool) -> dict:
    kwargs: dict = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            kwargs["poolclass"] = StaticPool
    return kwargs


def create_store_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create an engine for ``url`` (defaults to the configured database URL)."""
    settings = get_settings()
    url = url or settings.database_url
    if echo is None:
        echo = settings.sql_echo
    return create_engine(url, **_engine_kwargs(url, echo))


def open_query_surface(
    url: Optional[str] = None,
    metadata: Optional[MetaData] = None,
    supports_inline_identity: Optional[bool] = None,
) -> QuerySurface:
    """Build engine, provider and query surface in one call."""
    engine = create_store_engine(url)
    provider = DataProvider(engine, supports_inline_identity=supports_inline_identity)
    return QuerySurface(provider, metadata=metadata)
