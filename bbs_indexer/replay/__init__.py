"""
Log replay: idempotent, crash-safe application of board log entries.

This module provides:
- LogReplayer: Handler registry and per-entry transactional apply
- Handlers: Per-operation payload decoding
- FileLogSource: JSONL entry source
- replay_from_source / rebuild: Batch drivers
"""

from .replayer import ApplyOutcome, LogReplayer, ReplayResult
from .handlers import BoardPayload, ThreadPayload, PostPayload, decode_payload, default_handlers
from .source import FileLogSource
from .runner import rebuild, replay_from_source

__all__ = [
    "ApplyOutcome",
    "LogReplayer",
    "ReplayResult",
    "BoardPayload",
    "ThreadPayload",
    "PostPayload",
    "decode_payload",
    "default_handlers",
    "FileLogSource",
    "rebuild",
    "replay_from_source",
]
