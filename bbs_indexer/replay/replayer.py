"""
Log replayer: apply board log entries to the index store.

The replayer's only state is the persisted cursor (last_applied_sequence).
Each entry is applied in one transaction:

1. read the cursor; seq_num <= cursor is a no-op commit (duplicate or late)
2. optionally verify the signature
3. dispatch on operation; unknown kinds are logged and ignored
4. advance the cursor to seq_num and commit

Any failure rolls the whole transaction back, cursor included, and is
re-raised. Retrying is the caller's decision; nothing here retries.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Optional, Union

from ..core.errors import IndexerError
from ..core.models import BoardLogEntry, Operation
from ..logging_config import get_logger
from ..metrics import record_cursor, record_entry
from ..store.store import IndexStore
from .handlers import Handler, default_handlers

Verifier = Callable[[BoardLogEntry], None]


class ApplyOutcome(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    IGNORED = "ignored"


@dataclass(frozen=True)
class ReplayResult:
    """
    Result of a batch replay.

    Fields:
        applied: Entries dispatched to a handler
        skipped: Entries at or below the cursor
        ignored: Entries with an unknown operation (cursor still advanced)
        cursor: Cursor after the batch
    """
    applied: int
    skipped: int
    ignored: int
    cursor: int


def _key(operation: Union[Operation, str]) -> str:
    return operation.value if isinstance(operation, Operation) else str(operation)


class LogReplayer:
    """
    Registry of operation handlers plus the idempotent apply loop.

    Usage:
        replayer = LogReplayer(store)
        replayer.apply(entry)
        replayer.register("pin_thread", handle_pin_thread)
    """

    def __init__(
        self,
        store: IndexStore,
        verifier: Optional[Verifier] = None,
        strict_update_board: bool = False,
    ) -> None:
        """
        Args:
            store: Index store to write to (the only writer of that store)
            verifier: Called with each not-yet-applied entry before dispatch;
                raises to reject it. None means signatures were checked upstream.
            strict_update_board: Reject update_board for unknown boards instead
                of inserting them
        """
        self.store = store
        self.verifier = verifier
        self._handlers: Dict[str, Handler] = {}
        for operation, handler in default_handlers(strict_update_board).items():
            self.register(operation, handler)

    def register(self, operation: Union[Operation, str], handler: Handler) -> None:
        """
        Install or replace the handler for an operation kind.

        Args:
            operation: Operation or raw operation string
            handler: Function (repository, entry) -> None; raise to fail the entry
        """
        self._handlers[_key(operation)] = handler

    def handles(self, operation: Union[Operation, str]) -> bool:
        return _key(operation) in self._handlers

    def apply(self, entry: BoardLogEntry) -> ApplyOutcome:
        """
        Apply one entry.

        Returns:
            APPLIED, SKIPPED (seq_num <= cursor) or IGNORED (unknown operation)

        Raises:
            MalformedPayloadError, MissingFieldError, ConflictError,
            NotFoundError, SignatureError, StorageError: entry rolled back,
            cursor unchanged
        """
        log = get_logger(__name__, seq_num=entry.seq_num)
        handler = self._handlers.get(entry.operation)
        op_label = entry.operation if handler is not None else "unknown"
        start = time.monotonic()

        try:
            with self.store.transaction() as repo:
                cursor = repo.get_last_sequence()
                if entry.seq_num <= cursor:
                    outcome = ApplyOutcome.SKIPPED
                else:
                    if self.verifier is not None:
                        self.verifier(entry)
                    if handler is None:
                        log.warning("unknown operation %r, advancing cursor only", entry.operation)
                        outcome = ApplyOutcome.IGNORED
                    else:
                        handler(repo, entry)
                        outcome = ApplyOutcome.APPLIED
                    repo.set_last_sequence(entry.seq_num)
        except IndexerError as ex:
            log.error("entry %s rolled back: %s", entry.operation, ex)
            record_entry(op_label, "failed", time.monotonic() - start)
            raise

        record_entry(op_label, outcome.value, time.monotonic() - start)
        if outcome is ApplyOutcome.SKIPPED:
            log.debug("entry already applied (cursor=%d), skipping", cursor)
        else:
            record_cursor(entry.seq_num)
            log.info("applied %s entity=%s", entry.operation, entry.entity_id or "-")
        return outcome

    def apply_many(self, entries: Iterable[BoardLogEntry]) -> ReplayResult:
        """
        Apply entries one transaction at a time, in the given order.

        Stops at the first failure and re-raises it; entries before it stay
        committed.
        """
        counts = {outcome: 0 for outcome in ApplyOutcome}
        for entry in entries:
            counts[self.apply(entry)] += 1
        return ReplayResult(
            applied=counts[ApplyOutcome.APPLIED],
            skipped=counts[ApplyOutcome.SKIPPED],
            ignored=counts[ApplyOutcome.IGNORED],
            cursor=self.store.get_cursor(),
        )
