"""
Records for the materialized board view and the operation log.

Boards, threads and posts are plain mutable dataclasses handed out by the
repository. Log entries are immutable: they are the unit of replay.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .canonical import format_timestamp
from .errors import TransportError

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an RFC3339 timestamp into an aware UTC datetime.

    Raises:
        ValueError: If value is not a valid timestamp
    """
    if isinstance(value, datetime):
        ts = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def clamp_page(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    """
    Apply pagination defaults and bounds.

    limit <= 0 (or missing) becomes DEFAULT_LIMIT, anything above MAX_LIMIT is
    capped, negative offsets become 0.
    """
    if not limit or limit <= 0:
        limit = DEFAULT_LIMIT
    limit = min(limit, MAX_LIMIT)
    if not offset or offset < 0:
        offset = 0
    return limit, offset


class Operation(str, Enum):
    """Operation kinds understood by the replayer."""
    CREATE_BOARD = "create_board"
    UPDATE_BOARD = "update_board"
    CREATE_THREAD = "create_thread"
    CLOSE_THREAD = "close_thread"
    CREATE_POST = "create_post"
    DELETE_POST = "delete_post"

    @classmethod
    def parse(cls, value: str) -> Optional["Operation"]:
        """Return the matching Operation, or None for forward-compatible unknown kinds."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class Board:
    id: str
    name: str = ""
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    thread_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "thread_count": self.thread_count,
        }


@dataclass
class Thread:
    id: str
    board_id: str = ""
    title: str = ""
    author_id: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    post_count: int = 0
    is_closed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "board_id": self.board_id,
            "title": self.title,
            "author_id": self.author_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "post_count": self.post_count,
            "is_closed": self.is_closed,
        }


@dataclass
class Post:
    """
    A post inside a thread.

    board_id is denormalized from the thread. reply_to points at another post
    id and may dangle; it is never resolved here.
    """
    id: str
    thread_id: str = ""
    board_id: str = ""
    author_id: str = ""
    content: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_deleted: bool = False
    reply_to: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "thread_id": self.thread_id,
            "board_id": self.board_id,
            "author_id": self.author_id,
            "content": self.content,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_deleted": self.is_deleted,
            "reply_to": self.reply_to,
        }


@dataclass(frozen=True)
class BoardLogEntry:
    """
    One record of the append-only operation log.

    Fields:
        seq_num: Strictly increasing per log; the replay cursor unit
        timestamp: Producer timestamp (aware, UTC)
        operation: One of Operation, or an unknown forward-compatible kind
        entity_id: Target entity; required for close_thread / delete_post
        data: JSON-encoded entity payload; empty for entity_id-only operations
        signature: Base64 signature, opaque unless a verifier is configured
    """
    seq_num: int
    timestamp: datetime
    operation: str
    entity_id: str = ""
    data: str = ""
    signature: str = ""

    def signing_payload(self) -> Dict[str, Any]:
        """Fields covered by the entry signature (everything but the signature)."""
        return {
            "seq_num": self.seq_num,
            "timestamp": format_timestamp(self.timestamp),
            "operation": self.operation,
            "entity_id": self.entity_id,
            "data": self.data,
        }

    def to_dict(self) -> Dict[str, Any]:
        out = self.signing_payload()
        out["signature"] = self.signature
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoardLogEntry":
        """
        Build an entry from its wire form.

        Raises:
            TransportError: If seq_num/timestamp/operation are missing or invalid
        """
        try:
            seq_num = data["seq_num"]
            if isinstance(seq_num, bool) or not isinstance(seq_num, int):
                raise ValueError(f"seq_num must be an integer, got {seq_num!r}")
            return cls(
                seq_num=seq_num,
                timestamp=parse_timestamp(data["timestamp"]),
                operation=str(data["operation"]),
                entity_id=data.get("entity_id") or "",
                data=data.get("data") or "",
                signature=data.get("signature") or "",
            )
        except (KeyError, TypeError, ValueError) as ex:
            raise TransportError(f"invalid log entry: {ex}") from ex


@dataclass(frozen=True)
class SearchPostsRequest:
    query: str = ""
    board_id: str = ""
    thread_id: str = ""
    author_id: str = ""
    limit: int = DEFAULT_LIMIT
    offset: int = 0


@dataclass(frozen=True)
class SearchPostsResponse:
    posts: List[Post] = field(default_factory=list)
    total_count: int = 0
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "posts": [p.to_dict() for p in self.posts],
            "total_count": self.total_count,
            "limit": self.limit,
            "offset": self.offset,
        }


@dataclass(frozen=True)
class SearchThreadsRequest:
    query: str = ""
    board_id: str = ""
    limit: int = DEFAULT_LIMIT
    offset: int = 0


@dataclass(frozen=True)
class SearchThreadsResponse:
    threads: List[Thread] = field(default_factory=list)
    total_count: int = 0
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threads": [t.to_dict() for t in self.threads],
            "total_count": self.total_count,
            "limit": self.limit,
            "offset": self.offset,
        }
