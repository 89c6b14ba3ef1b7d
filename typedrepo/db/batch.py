"""
Batch executor for mutation statements.

A BatchQuery is single use: queue statements, execute once, discard.
"""
from __future__ import annotations

import logging
from typing import Any, List

from typedrepo.db.exceptions import BatchStateError
from typedrepo.db.providers import DataProvider

logger = logging.getLogger(__name__)


class BatchQuery:
    """
    Ordered queue of statements executed as one unit.

    Statements are opaque here; the provider decides whether the unit is a
    single transaction (see ``DataProvider.batch_transactional``).
    """

    def __init__(self, provider: DataProvider):
        self.provider = provider
        self._statements: List[Any] = []
        self._executed = False

    def __len__(self) -> int:
        return len(self._statements)

    @property
    def executed(self) -> bool:
        return self._executed

    def queue(self, statement: Any) -> None:
        if self._executed:
            raise BatchStateError("Cannot queue onto a batch that has already been executed")
        self._statements.append(statement)

    def execute(self) -> int:
        """Run every queued statement in order and return the total affected rows."""
        if self._executed:
            raise BatchStateError("Batch has already been executed")
        self._executed = True
        statements, self._statements = self._statements, []
        if not statements:
            return 0
        logger.debug(f"Executing batch of {len(statements)} statement(s)")
        return self.provider.execute_batch(statements)
