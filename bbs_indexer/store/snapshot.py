"""
Deterministic digest of the materialized view.

Two indexers that replayed the same log must report the same digest. The
updated_at column is left out because merges, closes and soft deletes stamp
wall-clock time, which differs between replicas.
"""

import hashlib
from typing import Any, Dict

from ..core.canonical import canonical_json_bytes
from .schema import boards, posts, threads
from .store import IndexStore

EXCLUDED_COLUMNS = ("row_id", "updated_at")


def _strip(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in EXCLUDED_COLUMNS}


def serialize_view(store: IndexStore) -> bytes:
    """
    Serialize cursor and all entity rows to canonical bytes.

    Rows are ordered by id, so insertion order does not matter.
    """
    with store.read() as repo:
        view = {
            "last_seq": repo.get_last_sequence(),
            "boards": [_strip(r) for r in repo.iter_all(boards)],
            "threads": [_strip(r) for r in repo.iter_all(threads)],
            "posts": [_strip(r) for r in repo.iter_all(posts)],
        }
    return canonical_json_bytes(view)


def compute_view_hash(store: IndexStore) -> str:
    """
    SHA-256 of serialize_view().

    Returns:
        Hex string (64 characters)
    """
    return hashlib.sha256(serialize_view(store)).hexdigest()
