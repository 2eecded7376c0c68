"""
Time sources for the replayer and repository.

Most timestamps come from log entries. The few places that stamp "now"
(board merges, counter bumps, thread close, post soft delete) take it from an
injected clock so tests and replicas can pin it.
"""

from dataclasses import dataclass
from datetime import datetime, timezone


class SystemClock:
    """Wall-clock UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FixedClock:
    """
    Clock that always reports the same instant.

    Since FixedClock is immutable, advance() returns a new instance.
    """
    current: datetime

    def now(self) -> datetime:
        return self.current

    def advance(self, delta) -> "FixedClock":
        return FixedClock(self.current + delta)
