"""FastAPI application exposing the read model over HTTP.

Routes:
- GET /api/v1/status
- GET /api/v1/boards, /api/v1/boards/{board_id}, /api/v1/boards/{board_id}/threads
- GET /api/v1/threads/{thread_id}, /api/v1/threads/{thread_id}/posts
- GET /api/v1/posts/{post_id}
- GET /api/v1/search/posts, /api/v1/search/threads

Missing entities answer 404; every other indexer failure answers 500 with
the error message, without a finer taxonomy.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.requests import Request

from ..core.errors import IndexerError
from ..query import QueryService

logger = logging.getLogger(__name__)


# ============================================================================
# Response Models
# ============================================================================


class BoardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    created_at: datetime
    updated_at: datetime
    thread_count: int


class ThreadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    board_id: str
    title: str
    author_id: str
    created_at: datetime
    updated_at: datetime
    post_count: int
    is_closed: bool


class PostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    thread_id: str
    board_id: str
    author_id: str
    content: str
    created_at: datetime
    updated_at: datetime
    is_deleted: bool
    reply_to: Optional[str] = None


class BoardList(BaseModel):
    boards: List[BoardOut]
    limit: int
    offset: int


class ThreadList(BaseModel):
    threads: List[ThreadOut]
    limit: int
    offset: int


class PostList(BaseModel):
    posts: List[PostOut]
    limit: int
    offset: int


class SearchPostsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    posts: List[PostOut]
    total_count: int = Field(..., description="Matches across all pages")
    limit: int
    offset: int


class SearchThreadsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    threads: List[ThreadOut]
    total_count: int = Field(..., description="Matches across all pages")
    limit: int
    offset: int


class StatusOut(BaseModel):
    last_applied_sequence: int


# ============================================================================
# Application
# ============================================================================


def _page_param(value: Optional[str]) -> Optional[int]:
    """Non-integer paging values fall back to the defaults instead of a 422."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def create_app(service: QueryService) -> FastAPI:
    """Build the HTTP app around a query service."""
    app = FastAPI(title="Board Log Indexer", version="0.1.0")

    @app.exception_handler(IndexerError)
    async def _indexer_error(request: Request, exc: IndexerError) -> JSONResponse:
        logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(HTTPException)
    async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.get("/api/v1/status", response_model=StatusOut)
    def status() -> dict:
        return service.status()

    @app.get("/api/v1/boards", response_model=BoardList)
    def list_boards(
        limit: Optional[str] = Query(None), offset: Optional[str] = Query(None)
    ) -> BoardList:
        page = service.list_boards(_page_param(limit), _page_param(offset))
        return BoardList(
            boards=[BoardOut.model_validate(b) for b in page.items],
            limit=page.limit,
            offset=page.offset,
        )

    @app.get("/api/v1/boards/{board_id}", response_model=BoardOut)
    def board_detail(board_id: str) -> BoardOut:
        board = service.get_board(board_id)
        if board is None:
            raise HTTPException(status_code=404, detail="board not found")
        return BoardOut.model_validate(board)

    @app.get("/api/v1/boards/{board_id}/threads", response_model=ThreadList)
    def board_threads(
        board_id: str, limit: Optional[str] = Query(None), offset: Optional[str] = Query(None)
    ) -> ThreadList:
        page = service.list_threads(board_id, _page_param(limit), _page_param(offset))
        return ThreadList(
            threads=[ThreadOut.model_validate(t) for t in page.items],
            limit=page.limit,
            offset=page.offset,
        )

    @app.get("/api/v1/threads/{thread_id}", response_model=ThreadOut)
    def thread_detail(thread_id: str) -> ThreadOut:
        thread = service.get_thread(thread_id)
        if thread is None:
            raise HTTPException(status_code=404, detail="thread not found")
        return ThreadOut.model_validate(thread)

    @app.get("/api/v1/threads/{thread_id}/posts", response_model=PostList)
    def thread_posts(
        thread_id: str,
        limit: Optional[str] = Query(None),
        offset: Optional[str] = Query(None),
        include_deleted: bool = Query(True),
    ) -> PostList:
        page = service.list_posts(
            thread_id, _page_param(limit), _page_param(offset), include_deleted=include_deleted
        )
        return PostList(
            posts=[PostOut.model_validate(p) for p in page.items],
            limit=page.limit,
            offset=page.offset,
        )

    @app.get("/api/v1/posts/{post_id}", response_model=PostOut)
    def post_detail(post_id: str) -> PostOut:
        post = service.get_post(post_id)
        if post is None:
            raise HTTPException(status_code=404, detail="post not found")
        return PostOut.model_validate(post)

    @app.get("/api/v1/search/posts", response_model=SearchPostsOut)
    def search_posts(
        query: str = Query(""),
        board_id: str = Query(""),
        thread_id: str = Query(""),
        author_id: str = Query(""),
        limit: Optional[str] = Query(None),
        offset: Optional[str] = Query(None),
    ) -> SearchPostsOut:
        resp = service.search_posts(
            query, board_id, thread_id, author_id, _page_param(limit), _page_param(offset)
        )
        return SearchPostsOut.model_validate(resp)

    @app.get("/api/v1/search/threads", response_model=SearchThreadsOut)
    def search_threads(
        query: str = Query(""),
        board_id: str = Query(""),
        limit: Optional[str] = Query(None),
        offset: Optional[str] = Query(None),
    ) -> SearchThreadsOut:
        resp = service.search_threads(query, board_id, _page_param(limit), _page_param(offset))
        return SearchThreadsOut.model_validate(resp)

    return app
