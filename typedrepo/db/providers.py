"""
Data provider: executes statements against a SQLAlchemy engine.

Every call acquires its own connection and releases it before returning,
so no cursor or connection outlives the operation that opened it.
"""
from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

from sqlalchemy.engine import Connection, Engine, Result
from sqlalchemy.exc import SQLAlchemyError

from typedrepo.db.exceptions import StoreExecutionError
from typedrepo.utils.settings import get_settings

logger = logging.getLogger(__name__)


class DataClient(str, enum.Enum):
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQL_SERVER = "mssql"
    ORACLE = "oracle"
    OTHER = "other"

    @classmethod
    def from_dialect(cls, dialect_name: str) -> "DataClient":
        name = (dialect_name or "").lower()
        if name == "mariadb":
            return cls.MYSQL
        for member in cls:
            if member.value == name:
                return member
        return cls.OTHER


@contextmanager
def _store_errors(statement=None) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(f"Store rejected statement: {exc}")
        raise StoreExecutionError(str(exc), statement=statement) from exc


def _affected(result: Result) -> int:
    # Drivers report -1 when the count is unknown
    count = result.rowcount
    return count if count and count > 0 else 0


class DataProvider:
    """
    Executes statements for one store.

    Args:
        engine: SQLAlchemy engine bound to the store
        supports_inline_identity: force the generated-key capability on or
            off; None asks the dialect whether it supports INSERT..RETURNING
        batch_transactional: run batches inside one transaction; None uses
            the configured default
    """

    def __init__(
        self,
        engine: Engine,
        supports_inline_identity: Optional[bool] = None,
        batch_transactional: Optional[bool] = None,
    ):
        settings = get_settings()
        self.engine = engine
        self.client = DataClient.from_dialect(engine.dialect.name)
        if supports_inline_identity is None:
            supports_inline_identity = settings.inline_identity
        if supports_inline_identity is None:
            supports_inline_identity = bool(getattr(engine.dialect, "insert_returning", False))
        self.supports_inline_identity = supports_inline_identity
        if batch_transactional is None:
            batch_transactional = settings.batch_transactional
        self.batch_transactional = batch_transactional

    def __repr__(self) -> str:
        return f"DataProvider(client={self.client.value!r}, inline_identity={self.supports_inline_identity})"

    @contextmanager
    def _begin(self) -> Iterator[Connection]:
        with _store_errors():
            with self.engine.begin() as conn:
                yield conn

    @contextmanager
    def execute_reader(self, statement) -> Iterator[Result]:
        """Yield a result cursor for ``statement``.

        The statement runs inside a transaction that commits when the block
        exits normally, so INSERT..RETURNING readers persist their row.
        Rows must be consumed inside the block.
        """
        with self._begin() as conn:
            with _store_errors(statement):
                result = conn.execute(statement)
            try:
                yield result
            finally:
                result.close()

    def execute_query(self, statement) -> int:
        """Execute a mutation and return the affected-row count."""
        with self._begin() as conn:
            with _store_errors(statement):
                result = conn.execute(statement)
            return _affected(result)

    def execute_scalar(self, statement) -> Any:
        """Return the first column of the first row, or None."""
        with self.execute_reader(statement) as reader:
            return reader.scalar()

    def execute_batch(self, statements: Iterable) -> int:
        """Execute ``statements`` in order on one connection.

        Transactional batches roll back entirely when any statement fails.
        Non-transactional batches commit each statement as it succeeds, so
        a failure leaves the earlier statements applied.
        """
        statements = list(statements)
        total = 0
        if self.batch_transactional:
            with self._begin() as conn:
                for statement in statements:
                    with _store_errors(statement):
                        total += _affected(conn.execute(statement))
            return total

        with _store_errors():
            with self.engine.connect() as conn:
                for statement in statements:
                    with _store_errors(statement):
                        total += _affected(conn.execute(statement))
                        conn.commit()
        return total
