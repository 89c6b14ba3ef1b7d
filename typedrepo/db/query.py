"""
Query construction over SQLAlchemy Core.

Builders here only assemble statements; execution always goes through a
DataProvider so connection handling stays in one place.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, List, Mapping, Optional, TypeVar, Union

from sqlalchemy import and_, delete, func, select
from sqlalchemy.engine import Result
from sqlalchemy.sql.elements import ColumnElement

from typedrepo.db.exceptions import QueryError, TranslationError
from typedrepo.db.providers import DataProvider
from typedrepo.db.schema import TableDescriptor


T = TypeVar("T")

Predicate = Union[Callable[[Any], Any], Mapping[str, Any], ColumnElement]


def translate_predicate(predicate: Predicate, table: TableDescriptor) -> ColumnElement:
    """Turn a predicate into a SQL boolean expression over ``table``."""
    if isinstance(predicate, ColumnElement):
        return predicate
    if isinstance(predicate, Mapping):
        if not predicate:
            raise TranslationError("Empty mapping predicate")
        try:
            return and_(*(table.column(name) == value for name, value in predicate.items()))
        except Exception as exc:
            raise TranslationError(f"Cannot translate mapping predicate: {exc}") from exc
    if callable(predicate):
        try:
            expression = predicate(table.table.c)
        except Exception as exc:
            raise TranslationError(f"Predicate raised while building SQL for '{table.name}': {exc}") from exc
        if not isinstance(expression, ColumnElement):
            raise TranslationError(
                f"Predicate returned {type(expression).__name__}, expected a SQL expression"
            )
        return expression
    raise TranslationError(f"Unsupported predicate type: {type(predicate).__name__}")


def translate_selector(selector: Callable[[Any], Any], table: TableDescriptor) -> ColumnElement:
    """Resolve a sort selector callable to a column or ordering expression."""
    try:
        expression = selector(table.table.c)
    except Exception as exc:
        raise TranslationError(f"Sort selector raised for '{table.name}': {exc}") from exc
    if not isinstance(expression, ColumnElement):
        raise TranslationError(
            f"Sort selector returned {type(expression).__name__}, expected a column"
        )
    return expression


def _check_paging(page_index: int, page_size: int) -> None:
    if page_size <= 0:
        raise QueryError(f"page_size must be positive, got {page_size}")
    if page_index < 0:
        raise QueryError(f"page_index must not be negative, got {page_index}")


class SelectQuery:
    """Fluent SELECT builder for one table."""

    def __init__(self, provider: DataProvider, table: TableDescriptor):
        self.provider = provider
        self.table = table
        self._criteria: List[ColumnElement] = []
        self._ordering: List[ColumnElement] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    def where(self, predicate: Predicate) -> "SelectQuery":
        self._criteria.append(translate_predicate(predicate, self.table))
        return self

    def where_equals(self, column: str, value: Any) -> "SelectQuery":
        self._criteria.append(self.table.column(column) == value)
        return self

    def where_like(self, column: str, pattern: str) -> "SelectQuery":
        self._criteria.append(self.table.column(column).like(pattern))
        return self

    def order_asc(self, column: str) -> "SelectQuery":
        self._ordering.append(self.table.column(column).asc())
        return self

    def order_desc(self, column: str) -> "SelectQuery":
        self._ordering.append(self.table.column(column).desc())
        return self

    def order_by(self, expression: ColumnElement) -> "SelectQuery":
        self._ordering.append(expression)
        return self

    def paged(self, page_index: int, page_size: int) -> "SelectQuery":
        """Restrict to one zero-based page."""
        _check_paging(page_index, page_size)
        self._limit = page_size
        self._offset = page_index * page_size
        return self

    def statement(self):
        stmt = select(self.table.table)
        if self._criteria:
            stmt = stmt.where(*self._criteria)
        if self._ordering:
            stmt = stmt.order_by(*self._ordering)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        if self._offset:
            stmt = stmt.offset(self._offset)
        return stmt

    def count_statement(self):
        stmt = select(func.count()).select_from(self.table.table)
        if self._criteria:
            stmt = stmt.where(*self._criteria)
        return stmt

    def get_record_count(self) -> int:
        """Count matching rows, ignoring ordering and paging."""
        return int(self.provider.execute_scalar(self.count_statement()) or 0)

    @contextmanager
    def execute_reader(self) -> Iterator[Result]:
        with self.provider.execute_reader(self.statement()) as reader:
            yield reader

    def execute_single(self, mapper) -> Optional[Any]:
        """Map the first matching row, or return None."""
        with self.execute_reader() as reader:
            row = reader.first()
        if row is None:
            return None
        return mapper.load(row, mapper.create())

    def execute_typed_list(self, mapper) -> List[Any]:
        with self.execute_reader() as reader:
            rows = reader.all()
        return [mapper.load(row, mapper.create()) for row in rows]


class DeleteQuery:
    """DELETE builder; without criteria it removes every row."""

    def __init__(self, provider: DataProvider, table: TableDescriptor):
        self.provider = provider
        self.table = table
        self._criteria: List[ColumnElement] = []

    def where(self, predicate: Predicate) -> "DeleteQuery":
        self._criteria.append(translate_predicate(predicate, self.table))
        return self

    def where_equals(self, column: str, value: Any) -> "DeleteQuery":
        self._criteria.append(self.table.column(column) == value)
        return self

    def statement(self):
        stmt = delete(self.table.table)
        if self._criteria:
            stmt = stmt.where(*self._criteria)
        return stmt

    def execute(self, provider: Optional[DataProvider] = None) -> int:
        return (provider or self.provider).execute_query(self.statement())


class RecordQuery(Generic[T]):
    """
    Deferred, re-iterable query yielding mapped records.

    Every refinement returns a new RecordQuery; nothing touches the store
    until the query is iterated or a terminal method runs. Each iteration
    issues a fresh SELECT.
    """

    def __init__(self, provider: DataProvider, table: TableDescriptor, mapper, _select: Optional[SelectQuery] = None):
        self.provider = provider
        self.table = table
        self.mapper = mapper
        self._select = _select or SelectQuery(provider, table)

    def _clone(self) -> "RecordQuery[T]":
        copy = SelectQuery(self.provider, self.table)
        copy._criteria = list(self._select._criteria)
        copy._ordering = list(self._select._ordering)
        copy._limit = self._select._limit
        copy._offset = self._select._offset
        return RecordQuery(self.provider, self.table, self.mapper, copy)

    def where(self, predicate: Predicate) -> "RecordQuery[T]":
        query = self._clone()
        query._select.where(predicate)
        return query

    def order_by(self, column: Union[str, Callable[[Any], Any]], descending: bool = False) -> "RecordQuery[T]":
        query = self._clone()
        if callable(column):
            query._select.order_by(translate_selector(column, self.table))
        elif descending:
            query._select.order_desc(column)
        else:
            query._select.order_asc(column)
        return query

    def limit(self, count: int) -> "RecordQuery[T]":
        query = self._clone()
        query._select._limit = count
        return query

    def offset(self, count: int) -> "RecordQuery[T]":
        query = self._clone()
        query._select._offset = count
        return query

    def statement(self):
        return self._select.statement()

    def all(self) -> List[T]:
        return self._select.execute_typed_list(self.mapper)

    def first(self) -> Optional[T]:
        return self.limit(1)._select.execute_single(self.mapper)

    def count(self) -> int:
        """Number of records iteration would yield, honouring limit and offset."""
        if self._select._limit is None and not self._select._offset:
            return self._select.get_record_count()
        stmt = select(func.count()).select_from(self.statement().subquery())
        return int(self.provider.execute_scalar(stmt) or 0)

    def __iter__(self) -> Iterator[T]:
        return iter(self.all())

    def __repr__(self) -> str:
        return f"RecordQuery(table={self.table.name!r})"
