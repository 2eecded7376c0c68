"""
Optional in-core verification of entry signatures.

By default signatures are checked upstream, before entries reach the
replayer. Passing an EntryVerifier to LogReplayer re-checks them here.
"""

from .signature import EntrySigner, EntryVerifier

__all__ = [
    "EntrySigner",
    "EntryVerifier",
]
