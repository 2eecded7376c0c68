"""
Tests for the JSONL log source and the replay driver.

Critical: an interrupted replay resumes after the last committed entry, and
a rebuild converges on the same view as an uninterrupted replay.
"""

import json
import os
import tempfile

import pytest

from bbs_indexer.core.errors import MalformedPayloadError, TransportError
from bbs_indexer.replay import FileLogSource, LogReplayer, rebuild, replay_from_source
from bbs_indexer.store import SQLIndexStore, compute_view_hash
from bbs_indexer.tests.helpers import board_entry, entry, memory_store, post_entry, thread_entry

LOG = [
    board_entry(1, "b1"),
    thread_entry(2, "t1", "b1", title="Welcome"),
    post_entry(3, "p1", "t1", "b1", "hello world"),
    post_entry(4, "p2", "t1", "b1", "another message", author_id="bob"),
    entry(5, "close_thread", "t1"),
]


def test_append_and_read_back():
    """Appended entries are read back in file order."""
    with tempfile.TemporaryDirectory() as tmpdir:
        source = FileLogSource(os.path.join(tmpdir, "board.jsonl"))
        source.append(LOG)

        entries = list(source)
        assert [e.seq_num for e in entries] == [1, 2, 3, 4, 5]
        assert entries[2] == LOG[2]
        assert [e.seq_num for e in source.read(from_seq=4)] == [4, 5]


def test_blank_lines_are_skipped():
    """Blank lines between records are not errors."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "board.jsonl")
        with open(path, "w") as f:
            f.write(json.dumps(LOG[0].to_dict()) + "\n\n   \n")
            f.write(json.dumps(LOG[1].to_dict()) + "\n")

        assert [e.seq_num for e in FileLogSource(path)] == [1, 2]


def test_undecodable_line_raises_transport_error():
    """Broken JSON and invalid envelopes surface as TransportError."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "board.jsonl")
        with open(path, "w") as f:
            f.write("{broken\n")
        with pytest.raises(TransportError, match="invalid JSON"):
            list(FileLogSource(path))

        with open(path, "w") as f:
            f.write(json.dumps({"seq_num": "one", "timestamp": "2024-01-01T00:00:00Z", "operation": "x"}))
        with pytest.raises(TransportError):
            list(FileLogSource(path))


def test_missing_file_raises_transport_error():
    """An unreadable log is a transport failure."""
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(TransportError):
            list(FileLogSource(os.path.join(tmpdir, "absent.jsonl")))


def test_replay_from_source_resumes_after_cursor():
    """A second run only applies entries appended since the first."""
    with tempfile.TemporaryDirectory() as tmpdir:
        source = FileLogSource(os.path.join(tmpdir, "board.jsonl"))
        source.append(LOG[:3])

        store = memory_store()
        replayer = LogReplayer(store)

        first = replay_from_source(replayer, source)
        assert (first.applied, first.cursor) == (3, 3)

        source.append(LOG[3:])
        second = replay_from_source(replayer, source)
        assert (second.applied, second.skipped, second.cursor) == (2, 0, 5)

        third = replay_from_source(replayer, source)
        assert (third.applied, third.cursor) == (0, 5)


def test_crash_mid_replay_resumes_where_it_stopped():
    """A failing entry stops the run; fixing the log lets replay continue."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "board.jsonl")
        source = FileLogSource(path)
        source.append(LOG[:2])
        source.append([entry(3, "create_post", "p1", "{oops")])

        with tempfile.TemporaryDirectory() as dbdir:
            db_url = "sqlite:///" + os.path.join(dbdir, "index.sqlite3")
            store = SQLIndexStore(db_url)
            with pytest.raises(MalformedPayloadError):
                replay_from_source(LogReplayer(store), source)
            assert store.get_cursor() == 2
            store.dispose()

            os.remove(path)
            source.append(LOG)

            restarted = SQLIndexStore(db_url)
            result = replay_from_source(LogReplayer(restarted), source)
            assert result.applied == 3
            assert result.cursor == 5
            restarted.dispose()


def test_rebuild_matches_fresh_replay():
    """rebuild() drops the view and converges on a clean replay."""
    with tempfile.TemporaryDirectory() as tmpdir:
        source = FileLogSource(os.path.join(tmpdir, "board.jsonl"))
        source.append(LOG)

        store = memory_store()
        replayer = LogReplayer(store)
        replay_from_source(replayer, source)
        with store.transaction() as repo:
            repo.soft_delete_post("p1")  # drift not backed by the log

        result = rebuild(replayer, source)

        fresh = memory_store()
        replay_from_source(LogReplayer(fresh), source)

        assert result.applied == 5
        assert compute_view_hash(store) == compute_view_hash(fresh)
