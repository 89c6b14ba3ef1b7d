"""
Query surface: schema lookup and query builders for one store.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Type, Union

from sqlalchemy import MetaData, Table, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from typedrepo.db.exceptions import StoreExecutionError
from typedrepo.db.mapping import TableRecordMapper
from typedrepo.db.providers import DataProvider
from typedrepo.db.query import DeleteQuery, RecordQuery, SelectQuery
from typedrepo.db.schema import TableDescriptor, describe_table

logger = logging.getLogger(__name__)


def table_name_for(record_type: type) -> str:
    """Table name for a record type: ``__tablename__`` if set, else the class name."""
    return getattr(record_type, "__tablename__", None) or record_type.__name__


class QuerySurface:
    """
    Entry point for table lookup and query construction.

    Table lookup searches the supplied ``metadata`` first and then reflects
    the live schema. Descriptors and misses are cached per surface; call
    ``clear_cache()`` after DDL changes.
    """

    def __init__(self, bind: Union[Engine, DataProvider], metadata: Optional[MetaData] = None):
        self.provider = bind if isinstance(bind, DataProvider) else DataProvider(bind)
        self.metadata = metadata
        self._reflected = MetaData()
        self._tables: Dict[str, Optional[TableDescriptor]] = {}

    @property
    def engine(self) -> Engine:
        return self.provider.engine

    def clear_cache(self) -> None:
        self._tables.clear()
        self._reflected = MetaData()

    def _declared_table(self, name: str) -> Optional[Table]:
        if self.metadata is None:
            return None
        lowered = name.lower()
        for table in self.metadata.tables.values():
            if table.name.lower() == lowered or table.fullname.lower() == lowered:
                return table
        return None

    def _reflect_table(self, name: str) -> Optional[Table]:
        lowered = name.lower()
        try:
            existing = inspect(self.engine).get_table_names()
            match = next((t for t in existing if t.lower() == lowered), None)
            if match is None:
                return None
            return Table(match, self._reflected, autoload_with=self.engine)
        except NoSuchTableError:
            return None
        except SQLAlchemyError as exc:
            raise StoreExecutionError(f"Schema lookup for '{name}' failed: {exc}") from exc

    def find_table(self, name: str) -> Optional[TableDescriptor]:
        """Return the descriptor for ``name`` (case-insensitive), or None."""
        key = name.lower()
        if key in self._tables:
            return self._tables[key]
        table = self._declared_table(name)
        if table is None:
            table = self._reflect_table(name)
        if table is None:
            logger.debug(f"No table found for '{name}'")
            descriptor = None
        else:
            descriptor = describe_table(table)
        self._tables[key] = descriptor
        return descriptor

    def find_table_for(self, record_type: type) -> Optional[TableDescriptor]:
        return self.find_table(table_name_for(record_type))

    def select(self, table: TableDescriptor) -> SelectQuery:
        return SelectQuery(self.provider, table)

    def delete(self, table: TableDescriptor) -> DeleteQuery:
        return DeleteQuery(self.provider, table)

    def mapper_for(self, record_type: Type, table: TableDescriptor) -> TableRecordMapper:
        return TableRecordMapper(record_type, table)

    def get_query(self, table: TableDescriptor, mapper) -> RecordQuery:
        return RecordQuery(self.provider, table, mapper)
