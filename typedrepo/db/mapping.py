"""
Record mapping between plain Python objects and table rows.

``RecordMapper`` is the capability the repository depends on; the default
``TableRecordMapper`` matches attributes to columns by name.
"""
from __future__ import annotations

import dataclasses
import types
import typing
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Protocol, Type, TypeVar

from sqlalchemy import insert, update, delete

from typedrepo.db.exceptions import IdentityBackfillError, MappingError
from typedrepo.db.schema import TableDescriptor

T = TypeVar("T")


class RecordMapper(Protocol[T]):
    """Converts records to statements and rows to records.

    The ``provider`` argument lets dialect-aware mappers vary the statement
    they build; each ``to_*`` method returns None when there is nothing to do.
    """

    def create(self) -> T: ...

    def load(self, row: Any, item: T) -> T: ...

    def to_insert(self, item: T, provider) -> Optional[Any]: ...

    def to_update(self, item: T, provider) -> Optional[Any]: ...

    def to_delete(self, item: T, provider) -> Optional[Any]: ...


_MISSING = object()


def record_attributes(record_type: type) -> Optional[Dict[str, str]]:
    """Return a lowercase-name -> attribute-name map for declared attributes.

    None means the type declares nothing (plain class), so any attribute
    name is accepted.
    """
    names = []
    if dataclasses.is_dataclass(record_type):
        names.extend(f.name for f in dataclasses.fields(record_type))
    for klass in reversed(record_type.__mro__):
        names.extend(getattr(klass, "__annotations__", {}).keys())
        slots = klass.__dict__.get("__slots__", ())
        names.extend([slots] if isinstance(slots, str) else slots)
    names = [n for n in names if not n.startswith("__")]
    if not names:
        return None
    return {name.lower(): name for name in names}


def declared_type(record_type: type, attribute: str) -> Optional[type]:
    """Return the annotated type of ``attribute``, unwrapping Optional."""
    try:
        hints = typing.get_type_hints(record_type)
    except Exception:
        hints = getattr(record_type, "__annotations__", {})
    hint = hints.get(attribute)
    if hint is None or isinstance(hint, str):
        return None
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        hint = args[0] if len(args) == 1 else None
    return hint if isinstance(hint, type) else None


def coerce_value(value: Any, target: Optional[type]) -> Any:
    """Convert ``value`` to ``target``; values already of that type pass through."""
    if target is None or target is Any or isinstance(value, target):
        return value
    if target is uuid.UUID:
        return uuid.UUID(str(value))
    if target is bool and isinstance(value, (int, str)):
        return bool(int(value))
    return target(value)


@dataclass(frozen=True)
class BackfillResult:
    assigned: bool
    error: Optional[IdentityBackfillError] = None


def backfill_identity(item: Any, attribute: Optional[str], value: Any, target: Optional[type]) -> BackfillResult:
    """Best-effort assignment of a generated key onto ``item``.

    Never raises; failures are reported in the returned result.
    """
    if value is None:
        return BackfillResult(assigned=False)
    try:
        if attribute is None:
            raise IdentityBackfillError(f"{type(item).__name__} has no primary key field")
        current = getattr(item, attribute, _MISSING)
        if current is _MISSING:
            raise IdentityBackfillError(f"{type(item).__name__} has no field '{attribute}'")
        setattr(item, attribute, coerce_value(value, target))
    except IdentityBackfillError as exc:
        return BackfillResult(assigned=False, error=exc)
    except Exception as exc:
        error = IdentityBackfillError(f"Cannot assign generated key {value!r} to '{attribute}': {exc}")
        error.__cause__ = exc
        return BackfillResult(assigned=False, error=error)
    return BackfillResult(assigned=True)


class TableRecordMapper(Generic[T]):
    """Maps ``record_type`` instances onto ``table`` by attribute name."""

    def __init__(self, record_type: Type[T], table: TableDescriptor):
        self.record_type = record_type
        self.table = table
        self._declared = record_attributes(record_type)

    def attribute_for(self, column: str) -> Optional[str]:
        """Attribute name backing ``column``, or None if the type lacks one."""
        if self._declared is None:
            return column
        return self._declared.get(column.lower())

    def key_attribute(self) -> Optional[str]:
        if self.table.primary_key is None:
            return None
        return self.attribute_for(self.table.primary_key.name)

    def key_type(self) -> Optional[type]:
        attribute = self.key_attribute()
        target = declared_type(self.record_type, attribute) if attribute else None
        if target is None and self.table.primary_key is not None:
            target = self.table.primary_key.python_type
        return target

    def create(self) -> T:
        try:
            return self.record_type()
        except TypeError as exc:
            raise MappingError(f"{self.record_type.__name__} must be constructible without arguments") from exc

    def load(self, row: Any, item: T) -> T:
        mapping = row._mapping
        for column in self.table.columns:
            attribute = self.attribute_for(column.name)
            if attribute is None or column.name not in mapping:
                continue
            setattr(item, attribute, mapping[column.name])
        return item

    def _check(self, item: Any) -> None:
        if not isinstance(item, self.record_type):
            raise MappingError(
                f"Expected {self.record_type.__name__}, got {type(item).__name__}"
            )

    def _values(self, item: T, include_key: bool) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        pk = self.table.primary_key
        for column in self.table.columns:
            if not include_key and pk is not None and column.name == pk.name:
                continue
            attribute = self.attribute_for(column.name)
            if attribute is None:
                continue
            value = getattr(item, attribute, _MISSING)
            if value is _MISSING:
                continue
            if column.autoincrement and value is None:
                continue
            values[column.name] = value
        return values

    def _key_value(self, item: T, action: str) -> Any:
        pk = self.table.primary_key
        if pk is None:
            raise MappingError(f"Cannot {action} {self.record_type.__name__}: table '{self.table.name}' has no primary key")
        attribute = self.attribute_for(pk.name)
        value = getattr(item, attribute, None) if attribute else None
        if value is None:
            raise MappingError(f"Cannot {action} {self.record_type.__name__}: '{pk.name}' is not set")
        return value

    def to_insert(self, item: T, provider) -> Optional[Any]:  # noqa: ARG002
        self._check(item)
        values = self._values(item, include_key=True)
        if not values:
            return None
        return insert(self.table.table).values(values)

    def to_update(self, item: T, provider) -> Optional[Any]:  # noqa: ARG002
        self._check(item)
        key = self._key_value(item, "update")
        values = self._values(item, include_key=False)
        if not values:
            return None
        return (
            update(self.table.table)
            .where(self.table.primary_key_column() == key)
            .values(values)
        )

    def to_delete(self, item: T, provider) -> Optional[Any]:  # noqa: ARG002
        self._check(item)
        key = self._key_value(item, "delete")
        return delete(self.table.table).where(self.table.primary_key_column() == key)
