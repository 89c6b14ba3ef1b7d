"""
Error taxonomy for the repository layer.

Lower-level SQLAlchemy failures are wrapped so callers can rely on a
stable, domain-friendly API.
"""


class RepositoryError(RuntimeError):
    """Base class for all repository layer failures."""


class SchemaError(RepositoryError):
    """Table or primary key metadata required by an operation is absent."""


class TranslationError(RepositoryError):
    """A predicate or sort selector could not be turned into SQL."""


class MappingError(RepositoryError):
    """A statement could not be built from a record."""


class IdentityBackfillError(RepositoryError):
    """A generated key could not be assigned back onto an inserted record.

    Never raised out of the repository; it travels inside a BackfillResult.
    """


class StoreExecutionError(RepositoryError):
    """The underlying store rejected a statement or a batch."""

    def __init__(self, message: str, statement=None):
        super().__init__(message)
        self.statement = statement


class BatchStateError(RepositoryError):
    """A batch was used after it had already been executed."""


class QueryError(RepositoryError, ValueError):
    """Invalid arguments supplied to the query builder."""
