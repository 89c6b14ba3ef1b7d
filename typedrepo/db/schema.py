"""
Table metadata descriptors.

A TableDescriptor is a read-only view over a SQLAlchemy ``Table`` that the
repository layer consults for column names and the primary key.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import Column, Table

from typedrepo.db.exceptions import SchemaError


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    python_type: Optional[type]
    autoincrement: bool = False
    nullable: bool = True


@dataclass(frozen=True)
class TableDescriptor:
    name: str
    columns: Tuple[ColumnDescriptor, ...]
    primary_key: Optional[ColumnDescriptor]
    table: Table

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(col.name for col in self.columns)

    def column(self, name: str) -> Column:
        """Return the SQLAlchemy column called ``name`` (case-insensitive)."""
        try:
            return self.table.c[name]
        except KeyError:
            lowered = name.lower()
            for col in self.table.c:
                if col.name.lower() == lowered:
                    return col
        raise SchemaError(f"Table '{self.name}' has no column '{name}'")

    @property
    def has_composite_key(self) -> bool:
        return len(self.table.primary_key.columns) > 1

    def primary_key_column(self) -> Column:
        if self.primary_key is None:
            raise SchemaError(f"Table '{self.name}' does not declare a primary key")
        return self.table.c[self.primary_key.name]


def _python_type(column: Column) -> Optional[type]:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def _is_autoincrement(column: Column, table: Table) -> bool:
    if not column.primary_key:
        return False
    if column.autoincrement is True:
        return True
    # "auto" applies to a lone integer key
    return (
        column.autoincrement == "auto"
        and len(table.primary_key.columns) == 1
        and _python_type(column) is int
    )


def describe_table(table: Table) -> TableDescriptor:
    """Build a descriptor for ``table``.

    Composite keys are described by their first column.
    """
    columns = tuple(
        ColumnDescriptor(
            name=col.name,
            python_type=_python_type(col),
            autoincrement=_is_autoincrement(col, table),
            nullable=bool(col.nullable),
        )
        for col in table.c
    )
    pk_names = [col.name for col in table.primary_key.columns]
    primary_key = next((col for col in columns if pk_names and col.name == pk_names[0]), None)
    return TableDescriptor(name=table.name, columns=columns, primary_key=primary_key, table=table)
