"""
Typed repository layer over SQLAlchemy Core.

Re-exports the public API so callers can import from ``typedrepo``
directly.
"""

from .db.batch import BatchQuery
from .db.database import create_store_engine, open_query_surface
from .db.exceptions import (
    BatchStateError,
    IdentityBackfillError,
    MappingError,
    QueryError,
    RepositoryError,
    SchemaError,
    StoreExecutionError,
    TranslationError,
)
from .db.mapping import BackfillResult, RecordMapper, TableRecordMapper
from .db.providers import DataClient, DataProvider
from .db.query import DeleteQuery, RecordQuery, SelectQuery
from .db.query_surface import QuerySurface
from .db.repositories import Repository
from .db.schema import ColumnDescriptor, TableDescriptor
from .db.schemas import PagedResult

__all__ = [
    # execution
    "DataClient",
    "DataProvider",
    "BatchQuery",
    "create_store_engine",
    "open_query_surface",
    # schema/query
    "ColumnDescriptor",
    "TableDescriptor",
    "QuerySurface",
    "SelectQuery",
    "DeleteQuery",
    "RecordQuery",
    # mapping
    "RecordMapper",
    "TableRecordMapper",
    "BackfillResult",
    # repository
    "Repository",
    "PagedResult",
    # errors
    "RepositoryError",
    "SchemaError",
    "TranslationError",
    "MappingError",
    "IdentityBackfillError",
    "StoreExecutionError",
    "BatchStateError",
    "QueryError",
]
