"""
Generic repository over one record type.

Implements load/search/paging reads and single or batched
insert/update/delete, delegating SQL generation to the query surface and
statement construction to a record mapper.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Iterable, List, Optional, Type, TypeVar, Union

from sqlalchemy.sql.dml import Insert

from typedrepo.db.batch import BatchQuery
from typedrepo.db.exceptions import SchemaError
from typedrepo.db.mapping import RecordMapper, backfill_identity
from typedrepo.db.providers import DataProvider
from typedrepo.db.query import Predicate, RecordQuery, SelectQuery, translate_selector
from typedrepo.db.query_surface import QuerySurface, table_name_for
from typedrepo.db.schema import TableDescriptor
from typedrepo.db.schemas import PagedResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DESC_SUFFIX = " desc"

StatementBuilder = Callable[[T, DataProvider], Any]
OrderBy = Union[str, Callable[[Any], Any], None]


class Repository(Generic[T]):
    """
    Typed façade for CRUD and query operations on ``record_type``.

    Args:
        record_type: class of the records; must be constructible without
            arguments so rows can be mapped onto fresh instances
        surface: query surface for the store holding the table
        mapper: optional RecordMapper; defaults to the surface's
            attribute-by-name mapper for the resolved table

    Mutations accept an optional ``provider`` to run against a different
    store than the surface's own.
    """

    def __init__(self, record_type: Type[T], surface: QuerySurface, mapper: Optional[RecordMapper] = None):
        self.record_type = record_type
        self.surface = surface
        self._mapper = mapper

    def __repr__(self) -> str:
        return f"Repository({self.record_type.__name__})"

    @property
    def provider(self) -> DataProvider:
        return self.surface.provider

    # -- metadata ---------------------------------------------------------

    def resolve_table(self) -> Optional[TableDescriptor]:
        """Return the table for the record type, or None if it does not exist."""
        return self.surface.find_table(table_name_for(self.record_type))

    def require_table(self) -> TableDescriptor:
        table = self.resolve_table()
        if table is None:
            raise SchemaError(f"No table found for {self.record_type.__name__}")
        return table

    def _single_key(self, table: TableDescriptor) -> str:
        # a lone key value cannot address a row in a composite-key table
        if table.primary_key is None:
            raise SchemaError(f"Table '{table.name}' does not declare a primary key")
        if table.has_composite_key:
            raise SchemaError(f"Table '{table.name}' has a composite primary key; use find() or delete_many()")
        return table.primary_key.name

    @property
    def mapper(self) -> RecordMapper:
        if self._mapper is None:
            self._mapper = self.surface.mapper_for(self.record_type, self.require_table())
        return self._mapper

    # -- reads ------------------------------------------------------------

    def _load_query(self, item: T, query: SelectQuery) -> bool:
        with query.execute_reader() as reader:
            row = reader.first()
            if row is None:
                return False
            self.mapper.load(row, item)
            return True

    def load(self, item: T, column: str, value: Any) -> bool:
        """Populate ``item`` from the first row where ``column == value``."""
        query = self.surface.select(self.require_table()).where_equals(column, value)
        return self._load_query(item, query)

    def load_where(self, item: T, predicate: Predicate) -> bool:
        """Populate ``item`` from the first row matching ``predicate``."""
        query = self.surface.select(self.require_table()).where(predicate)
        return self._load_query(item, query)

    def get_all(self) -> RecordQuery[T]:
        return self.surface.get_query(self.require_table(), self.mapper)

    def get_by_key(self, key: Any) -> Optional[T]:
        table = self.require_table()
        return (
            self.surface.select(table)
            .where_equals(self._single_key(table), key)
            .execute_single(self.mapper)
        )

    def get_paged(self, page_index: int, page_size: int, order_by: OrderBy = None) -> PagedResult[T]:
        """Return one zero-based page and the total record count.

        ``order_by`` may be None (primary key, else first column), a column
        name optionally suffixed with " desc" (any case), or a selector
        callable receiving the table columns. The count and the page are
        two separate queries, so concurrent writes can make them disagree.
        """
        table = self.require_table()
        total_count = self.surface.select(table).get_record_count()

        query = self.surface.select(table).paged(page_index, page_size)
        if callable(order_by):
            query.order_by(translate_selector(order_by, table))
        else:
            sort_by = order_by
            if sort_by is None:
                sort_by = table.primary_key.name if table.primary_key is not None else table.columns[0].name
            if sort_by.lower().endswith(DESC_SUFFIX):
                query.order_desc(sort_by[: -len(DESC_SUFFIX)].rstrip())
            else:
                query.order_asc(sort_by)

        items = query.execute_typed_list(self.mapper)
        return PagedResult(items=items, total_count=total_count, page_index=page_index, page_size=page_size)

    def search(self, column: str, text: str) -> List[T]:
        """Return records whose ``column`` starts with ``text``, ordered by it."""
        if not text.endswith("%"):
            text += "%"
        return (
            self.surface.select(self.require_table())
            .where_like(column, text)
            .order_asc(column)
            .execute_typed_list(self.mapper)
        )

    def find(self, predicate: Predicate) -> RecordQuery[T]:
        return self.get_all().where(predicate)

    # -- writes -----------------------------------------------------------

    def add(self, item: T, provider: Optional[DataProvider] = None) -> Any:
        """Insert ``item`` and return the generated key, if any.

        On stores that can return generated keys inline, the key is also
        written back onto the item's primary-key field. That write-back is
        best effort and never fails the insert. Statements other than a
        SQLAlchemy ``Insert`` (e.g. ``text()`` from a custom mapper) run
        as-is and return None.
        """
        provider = provider or self.provider
        mapper = self.mapper
        statement = mapper.to_insert(item, provider)
        if statement is None:
            return None

        table = self.require_table()
        if not (
            provider.supports_inline_identity
            and table.primary_key is not None
            and isinstance(statement, Insert)
        ):
            provider.execute_query(statement)
            logger.debug(f"Inserted {self.record_type.__name__} without identity retrieval")
            return None

        with provider.execute_reader(statement.returning(table.primary_key_column())) as reader:
            row = reader.first()
        result = row[0] if row is not None else None

        if result is not None:
            key_attribute = getattr(mapper, "key_attribute", None)
            key_type = getattr(mapper, "key_type", None)
            outcome = backfill_identity(
                item,
                key_attribute() if key_attribute else table.primary_key.name,
                result,
                key_type() if key_type else table.primary_key.python_type,
            )
            if outcome.error is not None:
                logger.warning(
                    f"Inserted {self.record_type.__name__} with key {result!r} but could not set it on the record: {outcome.error}"
                )
        return result

    def _run_batch(self, build: StatementBuilder, items: Iterable[T], provider: DataProvider) -> int:
        batch = BatchQuery(provider)
        for item in items:
            statement = build(item, provider)
            if statement is None:
                logger.warning(f"Skipping {self.record_type.__name__} with nothing to write")
                continue
            batch.queue(statement)
        return batch.execute()

    def add_all(self, items: Iterable[T], provider: Optional[DataProvider] = None) -> int:
        """Insert ``items`` as one batch. Generated keys are not written back."""
        return self._run_batch(self.mapper.to_insert, items, provider or self.provider)

    def update(self, item: T, provider: Optional[DataProvider] = None) -> int:
        provider = provider or self.provider
        statement = self.mapper.to_update(item, provider)
        if statement is None:
            return 0
        return provider.execute_query(statement)

    def update_all(self, items: Iterable[T], provider: Optional[DataProvider] = None) -> int:
        return self._run_batch(self.mapper.to_update, items, provider or self.provider)

    def delete(self, item: T, provider: Optional[DataProvider] = None) -> int:
        provider = provider or self.provider
        statement = self.mapper.to_delete(item, provider)
        if statement is None:
            return 0
        return provider.execute_query(statement)

    def delete_all(self, items: Iterable[T], provider: Optional[DataProvider] = None) -> int:
        return self._run_batch(self.mapper.to_delete, items, provider or self.provider)

    def delete_by_key(self, key: Any, provider: Optional[DataProvider] = None) -> int:
        """Delete by primary key. A missing table means nothing to delete."""
        table = self.resolve_table()
        if table is None:
            logger.debug(f"No table for {self.record_type.__name__}; nothing to delete")
            return 0
        return self.surface.delete(table).where_equals(self._single_key(table), key).execute(provider)

    def delete_many(self, predicate: Predicate, provider: Optional[DataProvider] = None) -> int:
        """Delete every row matching ``predicate`` in a single statement."""
        return self.surface.delete(self.require_table()).where(predicate).execute(provider)
