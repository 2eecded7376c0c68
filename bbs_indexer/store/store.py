"""
IndexStore abstract interface.

Defines the transactional contract the replayer and the query service rely on.
"""

from abc import ABC, abstractmethod
from typing import ContextManager

from .repository import EntityRepository


class IndexStore(ABC):
    """
    Durable storage for the materialized view and the replay cursor.

    All implementations must guarantee:
    - Entity writes and cursor changes made through one transaction() scope
      commit or roll back together
    - Rollback on every non-success exit, including BaseException
      (KeyboardInterrupt, task cancellation)
    - read() scopes never observe a half-committed transaction
    """

    @abstractmethod
    def transaction(self) -> ContextManager[EntityRepository]:
        """
        Open a read-write transaction.

        Yields:
            EntityRepository bound to the transaction

        Raises:
            StorageError: If begin/commit fails or the database errors
        """
        ...

    @abstractmethod
    def read(self) -> ContextManager[EntityRepository]:
        """
        Open a read-only scope over a consistent snapshot.

        Yields:
            EntityRepository; anything written through it is discarded
        """
        ...

    def get_cursor(self) -> int:
        """Return the persisted replay cursor."""
        with self.read() as repo:
            return repo.get_last_sequence()

    def set_cursor(self, seq: int) -> None:
        """Persist the replay cursor in its own transaction."""
        with self.transaction() as repo:
            repo.set_last_sequence(seq)

    def reset(self) -> None:
        """Clear all entity tables and set the cursor to 0 (rebuild path)."""
        with self.transaction() as repo:
            repo.clear()

    def dispose(self) -> None:
        """Release pooled resources. Default does nothing."""
        return None

