"""
Entity repository: typed operations over one database connection.

A repository is bound to the connection of a single transaction (or a single
read scope) handed out by an IndexStore. It is strict: duplicate creates
raise ConflictError and updates of missing rows raise NotFoundError.
Replay idempotency is the replayer's job, not this layer's.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional

from sqlalchemy import case, false, func, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from ..core.clock import SystemClock
from ..core.errors import ConflictError, NotFoundError, StorageError
from ..core.models import (
    Board,
    Thread,
    Post,
    SearchPostsRequest,
    SearchPostsResponse,
    SearchThreadsRequest,
    SearchThreadsResponse,
    clamp_page,
)
from .schema import CURSOR_ROW_ID, ENTITY_TABLES, boards, log_state, posts, threads


def _board_from_row(row) -> Board:
    return Board(
        id=row.id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
        thread_count=row.thread_count,
    )


def _thread_from_row(row) -> Thread:
    return Thread(
        id=row.id,
        board_id=row.board_id,
        title=row.title,
        author_id=row.author_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        post_count=row.post_count,
        is_closed=bool(row.is_closed),
    )


def _post_from_row(row) -> Post:
    return Post(
        id=row.id,
        thread_id=row.thread_id,
        board_id=row.board_id,
        author_id=row.author_id,
        content=row.content,
        created_at=row.created_at,
        updated_at=row.updated_at,
        is_deleted=bool(row.is_deleted),
        reply_to=row.reply_to or None,
    )


class EntityRepository:
    """
    Create/get/update/list/search over boards, threads and posts, plus the
    replay cursor, all inside the caller's transaction.
    """

    def __init__(self, conn: Connection, clock=None) -> None:
        self.conn = conn
        self.clock = clock or SystemClock()

    # -- cursor -----------------------------------------------------------

    def get_last_sequence(self) -> int:
        """Return the persisted replay cursor (0 when nothing was applied)."""
        seq = self.conn.execute(
            select(log_state.c.last_seq).where(log_state.c.id == CURSOR_ROW_ID)
        ).scalar_one_or_none()
        return int(seq) if seq is not None else 0

    def set_last_sequence(self, seq: int) -> None:
        result = self.conn.execute(
            update(log_state).where(log_state.c.id == CURSOR_ROW_ID).values(last_seq=seq)
        )
        if result.rowcount == 0:
            self.conn.execute(log_state.insert().values(id=CURSOR_ROW_ID, last_seq=seq))

    def clear(self) -> None:
        """Delete every entity row and reset the cursor to 0."""
        for table in ENTITY_TABLES:
            self.conn.execute(table.delete())
        self.set_last_sequence(0)

    # -- shared helpers ---------------------------------------------------

    def _exists(self, table, entity_id: str) -> bool:
        found = self.conn.execute(
            select(table.c.row_id).where(table.c.id == entity_id)
        ).first()
        return found is not None

    def _insert(self, table, kind: str, values: Dict[str, Any]) -> None:
        if self._exists(table, values["id"]):
            raise ConflictError(f"{kind} already exists: {values['id']}")
        try:
            # Savepoint keeps the outer transaction usable for the re-check.
            with self.conn.begin_nested():
                self.conn.execute(table.insert().values(**values))
        except IntegrityError as ex:
            if self._exists(table, values["id"]):
                raise ConflictError(f"{kind} already exists: {values['id']}") from ex
            raise StorageError(f"insert {kind} {values['id']}: {ex.orig}") from ex

    def _stamp(self, entity):
        now = self.clock.now()
        return replace(
            entity,
            created_at=entity.created_at or now,
            updated_at=entity.updated_at or now,
        )

    # -- boards -----------------------------------------------------------

    def create_board(self, board: Board) -> Board:
        board = self._stamp(board)
        self._insert(boards, "board", board.to_dict())
        return board

    def get_board(self, board_id: str) -> Optional[Board]:
        row = self.conn.execute(select(boards).where(boards.c.id == board_id)).first()
        return _board_from_row(row) if row is not None else None

    def update_board(self, board: Board) -> Board:
        board = replace(board, updated_at=self.clock.now())
        result = self.conn.execute(
            update(boards)
            .where(boards.c.id == board.id)
            .values(
                name=board.name,
                description=board.description,
                thread_count=board.thread_count,
                updated_at=board.updated_at,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(f"board not found: {board.id}")
        return board

    def list_boards(self, limit: Optional[int] = None, offset: Optional[int] = None) -> List[Board]:
        limit, offset = clamp_page(limit, offset)
        rows = self.conn.execute(
            select(boards).order_by(boards.c.row_id).limit(limit).offset(offset)
        )
        return [_board_from_row(r) for r in rows]

    # -- threads ----------------------------------------------------------

    def create_thread(self, thread: Thread) -> Thread:
        thread = self._stamp(thread)
        self._insert(threads, "thread", thread.to_dict())
        # Parent may not exist yet; the update then touches no rows.
        self.conn.execute(
            update(boards)
            .where(boards.c.id == thread.board_id)
            .values(thread_count=boards.c.thread_count + 1, updated_at=self.clock.now())
        )
        return thread

    def get_thread(self, thread_id: str) -> Optional[Thread]:
        row = self.conn.execute(select(threads).where(threads.c.id == thread_id)).first()
        return _thread_from_row(row) if row is not None else None

    def update_thread(self, thread: Thread) -> Thread:
        thread = replace(thread, updated_at=self.clock.now())
        result = self.conn.execute(
            update(threads)
            .where(threads.c.id == thread.id)
            .values(
                title=thread.title,
                author_id=thread.author_id,
                post_count=thread.post_count,
                is_closed=thread.is_closed,
                updated_at=thread.updated_at,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(f"thread not found: {thread.id}")
        return thread

    def close_thread(self, thread_id: str) -> bool:
        """Mark a thread closed. Returns False when the thread does not exist."""
        result = self.conn.execute(
            update(threads)
            .where(threads.c.id == thread_id)
            .values(is_closed=True, updated_at=self.clock.now())
        )
        return result.rowcount > 0

    def list_threads(
        self, board_id: str, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[Thread]:
        limit, offset = clamp_page(limit, offset)
        rows = self.conn.execute(
            select(threads)
            .where(threads.c.board_id == board_id)
            .order_by(threads.c.row_id)
            .limit(limit)
            .offset(offset)
        )
        return [_thread_from_row(r) for r in rows]

    # -- posts ------------------------------------------------------------

    def create_post(self, post: Post) -> Post:
        post = self._stamp(post)
        values = post.to_dict()
        values["reply_to"] = post.reply_to or None
        self._insert(posts, "post", values)
        self.conn.execute(
            update(threads)
            .where(threads.c.id == post.thread_id)
            .values(post_count=threads.c.post_count + 1, updated_at=self.clock.now())
        )
        return post

    def get_post(self, post_id: str) -> Optional[Post]:
        row = self.conn.execute(select(posts).where(posts.c.id == post_id)).first()
        return _post_from_row(row) if row is not None else None

    def update_post(self, post: Post) -> Post:
        post = replace(post, updated_at=self.clock.now())
        result = self.conn.execute(
            update(posts)
            .where(posts.c.id == post.id)
            .values(
                content=post.content,
                is_deleted=post.is_deleted,
                reply_to=post.reply_to or None,
                updated_at=post.updated_at,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(f"post not found: {post.id}")
        return post

    def soft_delete_post(self, post_id: str) -> bool:
        """
        Set is_deleted on a post and decrement its thread's post_count.

        The row and its content stay in place. Deleting an already deleted
        post changes nothing. Returns False when the post does not exist.
        """
        row = self.conn.execute(
            select(posts.c.thread_id, posts.c.is_deleted).where(posts.c.id == post_id)
        ).first()
        if row is None:
            return False
        if row.is_deleted:
            return True

        now = self.clock.now()
        self.conn.execute(
            update(posts).where(posts.c.id == post_id).values(is_deleted=True, updated_at=now)
        )
        self.conn.execute(
            update(threads)
            .where(threads.c.id == row.thread_id)
            .values(
                post_count=case((threads.c.post_count > 0, threads.c.post_count - 1), else_=0),
                updated_at=now,
            )
        )
        return True

    def list_posts(
        self,
        thread_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        include_deleted: bool = True,
    ) -> List[Post]:
        limit, offset = clamp_page(limit, offset)
        stmt = select(posts).where(posts.c.thread_id == thread_id)
        if not include_deleted:
            stmt = stmt.where(posts.c.is_deleted == false())
        rows = self.conn.execute(stmt.order_by(posts.c.row_id).limit(limit).offset(offset))
        return [_post_from_row(r) for r in rows]

    # -- search -----------------------------------------------------------

    def search_posts(self, req: SearchPostsRequest) -> SearchPostsResponse:
        """
        Case-insensitive substring search over post content.

        Soft-deleted posts are never returned. Newest first.
        """
        limit, offset = clamp_page(req.limit, req.offset)

        conds = [posts.c.is_deleted == false()]
        if req.query:
            conds.append(posts.c.content.icontains(req.query, autoescape=True))
        if req.board_id:
            conds.append(posts.c.board_id == req.board_id)
        if req.thread_id:
            conds.append(posts.c.thread_id == req.thread_id)
        if req.author_id:
            conds.append(posts.c.author_id == req.author_id)

        total = self.conn.execute(
            select(func.count()).select_from(posts).where(*conds)
        ).scalar_one()
        rows = self.conn.execute(
            select(posts)
            .where(*conds)
            .order_by(posts.c.created_at.desc(), posts.c.row_id.desc())
            .limit(limit)
            .offset(offset)
        )
        return SearchPostsResponse(
            posts=[_post_from_row(r) for r in rows],
            total_count=int(total),
            limit=limit,
            offset=offset,
        )

    def search_threads(self, req: SearchThreadsRequest) -> SearchThreadsResponse:
        """Case-insensitive substring search over thread titles. Newest first."""
        limit, offset = clamp_page(req.limit, req.offset)

        conds = []
        if req.query:
            conds.append(threads.c.title.icontains(req.query, autoescape=True))
        if req.board_id:
            conds.append(threads.c.board_id == req.board_id)

        total = self.conn.execute(
            select(func.count()).select_from(threads).where(*conds)
        ).scalar_one()
        rows = self.conn.execute(
            select(threads)
            .where(*conds)
            .order_by(threads.c.created_at.desc(), threads.c.row_id.desc())
            .limit(limit)
            .offset(offset)
        )
        return SearchThreadsResponse(
            threads=[_thread_from_row(r) for r in rows],
            total_count=int(total),
            limit=limit,
            offset=offset,
        )

    # -- full scans (digest) ----------------------------------------------

    def iter_all(self, table) -> List[Dict[str, Any]]:
        """Every row of an entity table as a dict, ordered by id."""
        rows = self.conn.execute(select(table).order_by(table.c.id))
        return [dict(r._mapping) for r in rows]
