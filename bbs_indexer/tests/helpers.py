"""Entry builders shared by the tests."""

import json
from datetime import datetime, timezone

from bbs_indexer.core.clock import FixedClock
from bbs_indexer.core.models import BoardLogEntry
from bbs_indexer.store import SQLIndexStore

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def memory_store(clock=None) -> SQLIndexStore:
    return SQLIndexStore("sqlite://", clock=clock or FixedClock(T0))


def entry(seq, operation, entity_id="", data=None, ts=None) -> BoardLogEntry:
    return BoardLogEntry(
        seq_num=seq,
        timestamp=ts or T0,
        operation=operation,
        entity_id=entity_id,
        data=json.dumps(data) if isinstance(data, dict) else (data or ""),
    )


def board_entry(seq, board_id, name="General", description=""):
    return entry(seq, "create_board", board_id, {"id": board_id, "name": name, "description": description})


def thread_entry(seq, thread_id, board_id, title="Hello", author_id="alice"):
    return entry(
        seq,
        "create_thread",
        thread_id,
        {"id": thread_id, "board_id": board_id, "title": title, "author_id": author_id},
    )


def post_entry(seq, post_id, thread_id, board_id, content, author_id="alice", ts=None, **extra):
    payload = {
        "id": post_id,
        "thread_id": thread_id,
        "board_id": board_id,
        "author_id": author_id,
        "content": content,
    }
    payload.update(extra)
    return entry(seq, "create_post", post_id, payload, ts=ts)
