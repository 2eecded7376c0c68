"""
Readers running next to an in-flight replay transaction.
"""

import os
import tempfile
import threading

from bbs_indexer.query import QueryService
from bbs_indexer.replay import LogReplayer
from bbs_indexer.replay.handlers import apply_create_board
from bbs_indexer.store import SQLIndexStore
from bbs_indexer.tests.helpers import board_entry, memory_store


def _read_during_entry(store):
    """
    Hold a create_board entry open mid-transaction and read from another thread.

    Returns (reader_was_blocked, seen, errors) where seen holds what the reader
    observed for the pending board and the cursor.
    """
    replayer = LogReplayer(store)
    replayer.apply(board_entry(1, "b1"))

    started = threading.Event()
    release = threading.Event()

    def slow_create_board(repo, e):
        apply_create_board(repo, e)
        started.set()
        release.wait(5)

    replayer.register("create_board", slow_create_board)

    errors = []
    seen = {}

    def write():
        try:
            replayer.apply(board_entry(2, "b2"))
        except Exception as ex:
            errors.append(ex)

    def read():
        try:
            with store.read() as repo:
                seen["board"] = repo.get_board("b2")
                seen["cursor"] = repo.get_last_sequence()
            seen["status"] = QueryService(store).status()["last_applied_sequence"]
        except Exception as ex:
            errors.append(ex)

    writer = threading.Thread(target=write)
    writer.start()
    assert started.wait(5)

    reader = threading.Thread(target=read)
    reader.start()
    reader.join(0.5)
    blocked = reader.is_alive()

    release.set()
    writer.join(5)
    reader.join(5)
    return blocked, seen, errors


def test_file_store_reader_sees_last_committed_entry():
    """A reader on a file database is not blocked and sees neither the row nor the cursor."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SQLIndexStore("sqlite:///" + os.path.join(tmpdir, "index.sqlite3"))
        try:
            blocked, seen, errors = _read_during_entry(store)

            assert errors == []
            assert blocked is False
            assert seen == {"board": None, "cursor": 1, "status": 1}
            with store.read() as repo:
                assert repo.get_last_sequence() == 2
                assert repo.get_board("b2") is not None
        finally:
            store.dispose()


def test_memory_store_reader_waits_for_entry_to_commit():
    """A reader on an in-memory database waits, then sees the row and the cursor together."""
    store = memory_store()
    try:
        blocked, seen, errors = _read_during_entry(store)

        assert errors == []
        assert blocked is True
        assert seen["board"] is not None
        assert seen["cursor"] == 2
        assert seen["status"] == 2
        with store.read() as repo:
            assert repo.get_last_sequence() == 2
            assert repo.get_board("b2") is not None
    finally:
        store.dispose()
