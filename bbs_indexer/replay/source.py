"""
File-based log source: newline-delimited JSON BoardLogEntry records.

Each line: {"seq_num": 1, "timestamp": "...", "operation": "...",
            "entity_id": "...", "data": "...", "signature": "..."}
"""

import json
import os
from typing import Any, Dict, Iterable, Iterator

from ..core.canonical import canonical_json_str
from ..core.errors import TransportError
from ..core.models import BoardLogEntry


class FileLogSource:
    """
    Reads (and, for tooling, appends) a JSONL board log.

    Entries are yielded in file order; ordering and duplicates are the
    replayer's concern, not this class's.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def read_records(self) -> Iterator[Dict[str, Any]]:
        """
        Yield raw decoded records, skipping blank lines.

        Raises:
            TransportError: If the file cannot be read or a line is not JSON
        """
        try:
            with open(self.path, "rb") as f:
                for lineno, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        rec = json.loads(line)
                    except ValueError as ex:
                        raise TransportError(f"{self.path}:{lineno}: invalid JSON: {ex}") from ex
                    if not isinstance(rec, dict):
                        raise TransportError(f"{self.path}:{lineno}: record is not an object")
                    yield rec
        except OSError as ex:
            raise TransportError(f"read {self.path}: {ex}") from ex

    def read(self, from_seq: int = 0) -> Iterator[BoardLogEntry]:
        """
        Yield entries with seq_num >= from_seq.

        Raises:
            TransportError: On unreadable file or invalid record
        """
        for rec in self.read_records():
            entry = BoardLogEntry.from_dict(rec)
            if entry.seq_num < from_seq:
                continue
            yield entry

    def __iter__(self) -> Iterator[BoardLogEntry]:
        return self.read()

    def append(self, entries: Iterable[BoardLogEntry]) -> None:
        """
        Append entries and fsync.

        Raises:
            TransportError: If the write fails
        """
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "ab") as f:
                for entry in entries:
                    f.write((canonical_json_str(entry.to_dict()) + "\n").encode("utf-8"))
                f.flush()
                os.fsync(f.fileno())
        except OSError as ex:
            raise TransportError(f"append {self.path}: {ex}") from ex
