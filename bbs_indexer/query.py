"""
Read-only query and search service over the index store.

Safe to call from many threads while the replayer is writing: every call runs
in its own read scope and never writes. Missing single entities come back as
None; storage failures propagate as StorageError.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .core.models import (
    Board,
    Post,
    SearchPostsRequest,
    SearchPostsResponse,
    SearchThreadsRequest,
    SearchThreadsResponse,
    Thread,
    clamp_page,
)
from .store.store import IndexStore


@dataclass(frozen=True)
class Page:
    """One page of a listing, with the effective limit/offset."""
    items: List[Any] = field(default_factory=list)
    limit: int = 0
    offset: int = 0


class QueryService:
    """Translate paginated requests into repository reads."""

    def __init__(self, store: IndexStore) -> None:
        self.store = store

    def status(self) -> Dict[str, Any]:
        return {"last_applied_sequence": self.store.get_cursor()}

    def list_boards(self, limit: Optional[int] = None, offset: Optional[int] = None) -> Page:
        limit, offset = clamp_page(limit, offset)
        with self.store.read() as repo:
            return Page(repo.list_boards(limit, offset), limit, offset)

    def get_board(self, board_id: str) -> Optional[Board]:
        with self.store.read() as repo:
            return repo.get_board(board_id)

    def list_threads(
        self, board_id: str, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> Page:
        limit, offset = clamp_page(limit, offset)
        with self.store.read() as repo:
            return Page(repo.list_threads(board_id, limit, offset), limit, offset)

    def get_thread(self, thread_id: str) -> Optional[Thread]:
        with self.store.read() as repo:
            return repo.get_thread(thread_id)

    def list_posts(
        self,
        thread_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        include_deleted: bool = True,
    ) -> Page:
        limit, offset = clamp_page(limit, offset)
        with self.store.read() as repo:
            posts = repo.list_posts(thread_id, limit, offset, include_deleted=include_deleted)
            return Page(posts, limit, offset)

    def get_post(self, post_id: str) -> Optional[Post]:
        with self.store.read() as repo:
            return repo.get_post(post_id)

    def search_posts(
        self,
        query: str = "",
        board_id: str = "",
        thread_id: str = "",
        author_id: str = "",
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> SearchPostsResponse:
        limit, offset = clamp_page(limit, offset)
        req = SearchPostsRequest(
            query=query or "",
            board_id=board_id or "",
            thread_id=thread_id or "",
            author_id=author_id or "",
            limit=limit,
            offset=offset,
        )
        with self.store.read() as repo:
            return repo.search_posts(req)

    def search_threads(
        self,
        query: str = "",
        board_id: str = "",
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> SearchThreadsResponse:
        limit, offset = clamp_page(limit, offset)
        req = SearchThreadsRequest(
            query=query or "",
            board_id=board_id or "",
            limit=limit,
            offset=offset,
        )
        with self.store.read() as repo:
            return repo.search_threads(req)
