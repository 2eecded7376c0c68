"""
Canonical serialization for signatures and view digests.

Signed entry payloads and materialized-view digests must produce identical
bytes on every replica, so both go through these functions.
"""

import json
from datetime import datetime, timezone
from typing import Any


def format_timestamp(ts: datetime) -> str:
    """
    Render a datetime as RFC3339 in UTC with a trailing "Z".

    Naive datetimes are taken to be UTC already.
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    text = ts.strftime("%Y-%m-%dT%H:%M:%S")
    if ts.microsecond:
        text += f".{ts.microsecond:06d}".rstrip("0")
    return text + "Z"


def canonicalize(obj: Any) -> Any:
    """
    Convert nested dict/list/datetime values to canonical form.

    Rules:
    - dict keys sorted alphabetically
    - tuples converted to lists
    - datetimes rendered with format_timestamp()
    """
    if isinstance(obj, dict):
        return {k: canonicalize(obj[k]) for k in sorted(obj.keys())}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(x) for x in obj]
    if isinstance(obj, datetime):
        return format_timestamp(obj)
    return obj


def canonical_json_bytes(obj: Any) -> bytes:
    """
    Deterministic UTF-8 JSON bytes (sorted keys, no whitespace).
    """
    canon = canonicalize(obj)
    s = json.dumps(canon, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return s.encode("utf-8")


def canonical_json_str(obj: Any) -> str:
    """Same as canonical_json_bytes but returns a string."""
    return canonical_json_bytes(obj).decode("utf-8")
