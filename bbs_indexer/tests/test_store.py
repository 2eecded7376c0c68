"""
Tests for the durable store and entity repository.

Critical: entity writes and the cursor commit or roll back together, and the
cursor survives a restart.
"""

import os
import tempfile
from datetime import timedelta

import pytest

from bbs_indexer.core.errors import ConflictError, NotFoundError, StorageError
from bbs_indexer.core.models import (
    Board,
    Post,
    SearchPostsRequest,
    SearchThreadsRequest,
    Thread,
)
from bbs_indexer.store import SQLIndexStore
from bbs_indexer.tests.helpers import T0, memory_store


def _seed_hello(store):
    with store.transaction() as repo:
        repo.create_board(Board(id="b1", name="General"))
        repo.create_thread(Thread(id="t1", board_id="b1", title="Hello", author_id="user1"))
        repo.create_post(
            Post(id="p1", thread_id="t1", board_id="b1", author_id="user1", content="hello world")
        )
        repo.create_post(
            Post(
                id="p2",
                thread_id="t1",
                board_id="b1",
                author_id="user2",
                content="another message",
                created_at=T0 + timedelta(seconds=1),
            )
        )


def test_fresh_store_cursor_is_zero_and_persists():
    """Cursor starts at 0 and survives reopening a file database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_url = "sqlite:///" + os.path.join(tmpdir, "index.sqlite3")

        store = SQLIndexStore(db_url)
        assert store.get_cursor() == 0
        store.set_cursor(42)
        store.dispose()

        reopened = SQLIndexStore(db_url)
        assert reopened.get_cursor() == 42
        reopened.dispose()


def test_entities_survive_reopen():
    """Committed rows are durable across store instances."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_url = "sqlite:///" + os.path.join(tmpdir, "index.sqlite3")

        store = SQLIndexStore(db_url)
        _seed_hello(store)
        store.dispose()

        reopened = SQLIndexStore(db_url)
        with reopened.read() as repo:
            assert repo.get_post("p1").content == "hello world"
            assert repo.get_thread("t1").post_count == 2
        reopened.dispose()


def test_transaction_rolls_back_on_error():
    """An exception inside transaction() discards entity and cursor writes."""
    store = memory_store()

    with pytest.raises(RuntimeError):
        with store.transaction() as repo:
            repo.create_board(Board(id="b1"))
            repo.set_last_sequence(3)
            raise RuntimeError("boom")

    assert store.get_cursor() == 0
    with store.read() as repo:
        assert repo.get_board("b1") is None


def test_transaction_rolls_back_on_cancellation():
    """BaseException (KeyboardInterrupt) rolls back as well."""
    store = memory_store()

    with pytest.raises(KeyboardInterrupt):
        with store.transaction() as repo:
            repo.create_board(Board(id="b1"))
            repo.set_last_sequence(3)
            raise KeyboardInterrupt

    assert store.get_cursor() == 0
    with store.read() as repo:
        assert repo.get_board("b1") is None


def test_read_scope_discards_writes():
    """Writes made through read() never commit."""
    store = memory_store()

    with store.read() as repo:
        repo.create_board(Board(id="b1"))

    with store.read() as repo:
        assert repo.get_board("b1") is None


def test_create_conflict_and_get_missing():
    """Duplicate create raises ConflictError; missing get returns None."""
    store = memory_store()
    with store.transaction() as repo:
        repo.create_board(Board(id="b1"))

    with pytest.raises(ConflictError):
        with store.transaction() as repo:
            repo.create_board(Board(id="b1"))

    with store.read() as repo:
        assert repo.get_board("nope") is None
        assert repo.get_thread("nope") is None
        assert repo.get_post("nope") is None


def test_integrity_failure_other_than_duplicate_is_storage_error():
    """A NOT NULL violation is a storage failure, not a conflict."""
    store = memory_store()

    with pytest.raises(StorageError) as excinfo:
        with store.transaction() as repo:
            repo.create_board(Board(id="b1", name=None))

    assert not isinstance(excinfo.value, ConflictError)
    with store.read() as repo:
        assert repo.get_board("b1") is None


def test_update_missing_raises_not_found():
    """Updates of absent rows raise NotFoundError."""
    store = memory_store()

    for update in (
        lambda repo: repo.update_board(Board(id="x")),
        lambda repo: repo.update_thread(Thread(id="x")),
        lambda repo: repo.update_post(Post(id="x")),
    ):
        with pytest.raises(NotFoundError):
            with store.transaction() as repo:
                update(repo)


def test_update_bumps_updated_at():
    """Update overwrites mutable fields and stamps the clock time."""
    store = memory_store()
    with store.transaction() as repo:
        repo.create_thread(Thread(id="t1", title="old", created_at=T0, updated_at=T0))

    later = T0 + timedelta(hours=2)
    store.clock = store.clock.advance(timedelta(hours=2))
    with store.transaction() as repo:
        thread = repo.get_thread("t1")
        thread.title = "new"
        repo.update_thread(thread)

    with store.read() as repo:
        thread = repo.get_thread("t1")
    assert thread.title == "new"
    assert thread.created_at == T0
    assert thread.updated_at == later


def test_counters_follow_creates_and_deletes():
    """thread_count and post_count track children; deletes never go below 0."""
    store = memory_store()
    _seed_hello(store)

    with store.read() as repo:
        assert repo.get_board("b1").thread_count == 1
        assert repo.get_thread("t1").post_count == 2

    with store.transaction() as repo:
        assert repo.soft_delete_post("p1") is True
        assert repo.soft_delete_post("p1") is True  # already deleted
        assert repo.soft_delete_post("missing") is False

    with store.read() as repo:
        assert repo.get_thread("t1").post_count == 1

    with store.transaction() as repo:
        thread = repo.get_thread("t1")
        thread.post_count = 0
        repo.update_thread(thread)
        repo.soft_delete_post("p2")

    with store.read() as repo:
        assert repo.get_thread("t1").post_count == 0


def test_close_thread_reports_missing():
    """close_thread returns whether a row changed."""
    store = memory_store()
    _seed_hello(store)

    with store.transaction() as repo:
        assert repo.close_thread("t1") is True
        assert repo.close_thread("missing") is False

    with store.read() as repo:
        assert repo.get_thread("t1").is_closed is True


def test_listing_is_insertion_ordered_and_paginated():
    """List follows insertion order regardless of id or timestamps."""
    store = memory_store()
    with store.transaction() as repo:
        for i, board_id in enumerate(["zeta", "alpha", "mid"]):
            repo.create_board(Board(id=board_id, created_at=T0 - timedelta(days=i)))

    with store.read() as repo:
        assert [b.id for b in repo.list_boards()] == ["zeta", "alpha", "mid"]
        assert [b.id for b in repo.list_boards(limit=1, offset=1)] == ["alpha"]
        assert [b.id for b in repo.list_boards(limit=0, offset=-5)] == ["zeta", "alpha", "mid"]


def test_search_posts_example():
    """hello matches one post; the other post is not returned."""
    store = memory_store()
    _seed_hello(store)

    with store.read() as repo:
        resp = repo.search_posts(SearchPostsRequest(query="hello"))

    assert resp.total_count == 1
    assert [p.id for p in resp.posts] == ["p1"]
    assert resp.limit == 20
    assert resp.offset == 0


def test_search_threads_is_case_insensitive():
    """Searching "Hello" or "hello" finds the thread titled Hello."""
    store = memory_store()
    _seed_hello(store)

    with store.read() as repo:
        upper = repo.search_threads(SearchThreadsRequest(query="Hello"))
        lower = repo.search_threads(SearchThreadsRequest(query="hELLo"))

    assert upper.total_count == 1
    assert upper.threads[0].id == "t1"
    assert lower.total_count == 1


def test_search_posts_filters_and_ordering():
    """Filters narrow results; empty query matches all; newest first."""
    store = memory_store()
    _seed_hello(store)

    with store.read() as repo:
        everything = repo.search_posts(SearchPostsRequest())
        by_author = repo.search_posts(SearchPostsRequest(author_id="user2"))
        other_board = repo.search_posts(SearchPostsRequest(board_id="b2"))
        paged = repo.search_posts(SearchPostsRequest(limit=1, offset=1))

    assert [p.id for p in everything.posts] == ["p2", "p1"]
    assert [p.id for p in by_author.posts] == ["p2"]
    assert other_board.total_count == 0
    assert paged.total_count == 2
    assert [p.id for p in paged.posts] == ["p1"]


def test_search_excludes_soft_deleted_posts():
    """Deleted posts vanish from search but stay retrievable."""
    store = memory_store()
    _seed_hello(store)
    with store.transaction() as repo:
        repo.soft_delete_post("p1")

    with store.read() as repo:
        resp = repo.search_posts(SearchPostsRequest(query="hello"))
        assert resp.total_count == 0
        assert repo.get_post("p1").is_deleted is True


def test_search_treats_wildcards_literally():
    """% and _ in the query match themselves only."""
    store = memory_store()
    with store.transaction() as repo:
        repo.create_post(Post(id="p1", thread_id="t1", content="100% sure"))
        repo.create_post(Post(id="p2", thread_id="t1", content="100 percent"))

    with store.read() as repo:
        resp = repo.search_posts(SearchPostsRequest(query="100%"))
        underscore = repo.search_posts(SearchPostsRequest(query="_"))

    assert [p.id for p in resp.posts] == ["p1"]
    assert underscore.total_count == 0


def test_search_limit_is_clamped():
    """Oversized limits are capped, negative offsets reset."""
    store = memory_store()
    _seed_hello(store)

    with store.read() as repo:
        resp = repo.search_posts(SearchPostsRequest(limit=10_000, offset=-3))

    assert resp.limit == 100
    assert resp.offset == 0


def test_reset_clears_entities_and_cursor():
    """reset() is the rebuild starting point."""
    store = memory_store()
    _seed_hello(store)
    store.set_cursor(4)

    store.reset()

    assert store.get_cursor() == 0
    with store.read() as repo:
        assert repo.list_boards() == []
        assert repo.get_post("p1") is None
