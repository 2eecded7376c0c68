"""
Table definitions for the materialized board view.

Every entity table carries an autoincrement row_id that fixes insertion
order; the producer-assigned id is a unique text column. board_id and
thread_id are logical references only: children may land before parents.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    CheckConstraint,
)
from sqlalchemy.types import TypeDecorator

metadata = MetaData()


class UTCDateTime(TypeDecorator):
    """
    Store datetimes as naive UTC, return them timezone-aware.

    SQLite has no timezone support, so offsets are normalized on the way in.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        return value.replace(tzinfo=timezone.utc)


boards = Table(
    "boards",
    metadata,
    Column("row_id", Integer, primary_key=True, autoincrement=True),
    Column("id", Text, nullable=False, unique=True),
    Column("name", Text, nullable=False, default=""),
    Column("description", Text, nullable=False, default=""),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Column("thread_count", Integer, nullable=False, default=0),
)

threads = Table(
    "threads",
    metadata,
    Column("row_id", Integer, primary_key=True, autoincrement=True),
    Column("id", Text, nullable=False, unique=True),
    Column("board_id", Text, nullable=False, default=""),
    Column("title", Text, nullable=False, default=""),
    Column("author_id", Text, nullable=False, default=""),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Column("post_count", Integer, nullable=False, default=0),
    Column("is_closed", Boolean, nullable=False, default=False),
    Index("idx_threads_board_id_created_at", "board_id", "created_at"),
)

posts = Table(
    "posts",
    metadata,
    Column("row_id", Integer, primary_key=True, autoincrement=True),
    Column("id", Text, nullable=False, unique=True),
    Column("thread_id", Text, nullable=False, default=""),
    Column("board_id", Text, nullable=False, default=""),
    Column("author_id", Text, nullable=False, default=""),
    Column("content", Text, nullable=False, default=""),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Column("is_deleted", Boolean, nullable=False, default=False),
    Column("reply_to", Text, nullable=True),
    Index("idx_posts_thread_id_created_at", "thread_id", "created_at"),
    Index("idx_posts_board_id_created_at", "board_id", "created_at"),
    Index("idx_posts_author_id", "author_id"),
)

# Replay cursor: a single row, independent of the entity tables.
log_state = Table(
    "log_state",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("last_seq", BigInteger, nullable=False),
    CheckConstraint("id = 1", name="log_state_single_row"),
)

CURSOR_ROW_ID = 1

ENTITY_TABLES = (posts, threads, boards)
