"""
Per-operation payload decoding and handlers.

Each operation decodes its own payload shape; a decode failure is scoped to
the entry being processed and surfaces as MalformedPayloadError. Envelope
fields are the fallback when the payload omits them: entity_id for the id,
the entry timestamp for created_at/updated_at.

Handler signature: (repository, entry) -> None
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import MalformedPayloadError, MissingFieldError, NotFoundError
from ..core.models import Board, BoardLogEntry, Operation, Post, Thread, parse_timestamp
from ..store.repository import EntityRepository

logger = logging.getLogger(__name__)

Handler = Callable[[EntityRepository, BoardLogEntry], None]

P = TypeVar("P", bound=BaseModel)


class BoardPayload(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    thread_count: int = 0


class ThreadPayload(BaseModel):
    id: Optional[str] = None
    board_id: Optional[str] = None
    title: Optional[str] = None
    author_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    post_count: int = 0
    is_closed: bool = False


class PostPayload(BaseModel):
    id: Optional[str] = None
    thread_id: Optional[str] = None
    board_id: Optional[str] = None
    author_id: Optional[str] = None
    content: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_deleted: bool = False
    reply_to: Optional[str] = None


def decode_payload(model: Type[P], entry: BoardLogEntry) -> P:
    """
    Decode entry.data into the operation's payload model.

    Raises:
        MalformedPayloadError: If data is not JSON or does not fit the model
    """
    try:
        return model.model_validate_json(entry.data)
    except ValidationError as ex:
        raise MalformedPayloadError(
            f"{entry.operation} seq={entry.seq_num}: invalid payload: {ex}"
        ) from ex


def _timestamp_or(value: Optional[datetime], fallback: datetime) -> datetime:
    # year 1 is the zero time some producers send for "unset"
    if value is None or value.year <= 1:
        return fallback
    return parse_timestamp(value)


def _entity_id(payload_id: Optional[str], entry: BoardLogEntry) -> str:
    entity_id = payload_id or entry.entity_id
    if not entity_id:
        raise MissingFieldError(f"{entry.operation} seq={entry.seq_num}: empty entity_id")
    return entity_id


def _require_entity_id(entry: BoardLogEntry) -> str:
    if not entry.entity_id:
        raise MissingFieldError(f"{entry.operation} seq={entry.seq_num}: empty entity_id")
    return entry.entity_id


def _board_from_payload(payload: BoardPayload, entry: BoardLogEntry) -> Board:
    return Board(
        id=_entity_id(payload.id, entry),
        name=payload.name or "",
        description=payload.description or "",
        created_at=_timestamp_or(payload.created_at, entry.timestamp),
        updated_at=_timestamp_or(payload.updated_at, entry.timestamp),
        thread_count=payload.thread_count,
    )


def apply_create_board(repo: EntityRepository, entry: BoardLogEntry) -> None:
    payload = decode_payload(BoardPayload, entry)
    repo.create_board(_board_from_payload(payload, entry))


def apply_update_board(repo: EntityRepository, entry: BoardLogEntry, strict: bool = False) -> None:
    """
    Merge name/description onto an existing board, or insert it if absent.

    Only non-empty incoming fields overwrite; thread_count is never touched.
    With strict=True an unknown board raises NotFoundError instead, so the
    entry fails and can be re-delivered once its create_board has landed.
    """
    payload = decode_payload(BoardPayload, entry)
    board_id = _entity_id(payload.id, entry)

    existing = repo.get_board(board_id)
    if existing is None:
        if strict:
            raise NotFoundError(f"update_board seq={entry.seq_num}: board not found: {board_id}")
        logger.info("update_board for unknown board %s, inserting", board_id)
        repo.create_board(_board_from_payload(payload, entry))
        return

    if payload.name:
        existing.name = payload.name
    if payload.description:
        existing.description = payload.description
    repo.update_board(existing)


def apply_create_thread(repo: EntityRepository, entry: BoardLogEntry) -> None:
    payload = decode_payload(ThreadPayload, entry)
    repo.create_thread(
        Thread(
            id=_entity_id(payload.id, entry),
            board_id=payload.board_id or "",
            title=payload.title or "",
            author_id=payload.author_id or "",
            created_at=_timestamp_or(payload.created_at, entry.timestamp),
            updated_at=_timestamp_or(payload.updated_at, entry.timestamp),
            post_count=payload.post_count,
            is_closed=payload.is_closed,
        )
    )


def apply_close_thread(repo: EntityRepository, entry: BoardLogEntry) -> None:
    thread_id = _require_entity_id(entry)
    if not repo.close_thread(thread_id):
        logger.warning("close_thread for unknown thread %s seq=%d", thread_id, entry.seq_num)


def apply_create_post(repo: EntityRepository, entry: BoardLogEntry) -> None:
    payload = decode_payload(PostPayload, entry)
    repo.create_post(
        Post(
            id=_entity_id(payload.id, entry),
            thread_id=payload.thread_id or "",
            board_id=payload.board_id or "",
            author_id=payload.author_id or "",
            content=payload.content or "",
            created_at=_timestamp_or(payload.created_at, entry.timestamp),
            updated_at=_timestamp_or(payload.updated_at, entry.timestamp),
            is_deleted=payload.is_deleted,
            reply_to=payload.reply_to or None,
        )
    )


def apply_delete_post(repo: EntityRepository, entry: BoardLogEntry) -> None:
    # data is unused: the post id travels in entity_id
    post_id = _require_entity_id(entry)
    if not repo.soft_delete_post(post_id):
        logger.warning("delete_post for unknown post %s seq=%d", post_id, entry.seq_num)


def default_handlers(strict_update_board: bool = False) -> Dict[Operation, Handler]:
    """Handler table for the known operation kinds."""

    def update_board(repo: EntityRepository, entry: BoardLogEntry) -> None:
        apply_update_board(repo, entry, strict=strict_update_board)

    return {
        Operation.CREATE_BOARD: apply_create_board,
        Operation.UPDATE_BOARD: update_board,
        Operation.CREATE_THREAD: apply_create_thread,
        Operation.CLOSE_THREAD: apply_close_thread,
        Operation.CREATE_POST: apply_create_post,
        Operation.DELETE_POST: apply_delete_post,
    }
