"""
Replay driver: resume from the cursor, or rebuild from scratch.
"""

import logging

from ..metrics import track_replay_duration
from .replayer import LogReplayer, ReplayResult
from .source import FileLogSource

logger = logging.getLogger(__name__)


def replay_from_source(replayer: LogReplayer, source: FileLogSource) -> ReplayResult:
    """
    Apply every entry after the persisted cursor.

    Crash-safe: a run interrupted mid-way resumes after the last committed
    entry. The first failing entry stops the run and is re-raised.
    """
    cursor = replayer.store.get_cursor()
    logger.info("Replaying %s from seq %d", source.path, cursor + 1)
    with track_replay_duration():
        result = replayer.apply_many(source.read(from_seq=cursor + 1))
    logger.info(
        "Replay done: applied=%d skipped=%d ignored=%d cursor=%d",
        result.applied,
        result.skipped,
        result.ignored,
        result.cursor,
    )
    return result


def rebuild(replayer: LogReplayer, source: FileLogSource) -> ReplayResult:
    """
    Drop the materialized view and replay the whole log.

    Clears all entity tables, resets the cursor to 0, then replays.
    """
    logger.info("Rebuilding index from %s", source.path)
    replayer.store.reset()
    return replay_from_source(replayer, source)
