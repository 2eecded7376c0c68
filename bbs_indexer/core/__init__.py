"""
Core records and primitives.

This module provides:
- Board, Thread, Post: rows of the materialized view
- BoardLogEntry, Operation: the replay unit and its known kinds
- Search request/response records and pagination bounds
- Canonical: Deterministic serialization
- Clock: Injectable time source
- Errors: The indexer exception taxonomy
"""

from .models import (
    Board,
    Thread,
    Post,
    BoardLogEntry,
    Operation,
    SearchPostsRequest,
    SearchPostsResponse,
    SearchThreadsRequest,
    SearchThreadsResponse,
    DEFAULT_LIMIT,
    MAX_LIMIT,
    clamp_page,
    parse_timestamp,
)
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str, format_timestamp
from .clock import SystemClock, FixedClock
from .errors import (
    IndexerError,
    TransportError,
    MalformedPayloadError,
    MissingFieldError,
    ConflictError,
    NotFoundError,
    StorageError,
    SignatureError,
)

__all__ = [
    "Board",
    "Thread",
    "Post",
    "BoardLogEntry",
    "Operation",
    "SearchPostsRequest",
    "SearchPostsResponse",
    "SearchThreadsRequest",
    "SearchThreadsResponse",
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "clamp_page",
    "parse_timestamp",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "format_timestamp",
    "SystemClock",
    "FixedClock",
    "IndexerError",
    "TransportError",
    "MalformedPayloadError",
    "MissingFieldError",
    "ConflictError",
    "NotFoundError",
    "StorageError",
    "SignatureError",
]
