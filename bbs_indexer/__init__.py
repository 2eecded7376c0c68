"""
Board Log Indexer

Replays an append-only log of signed board operations into a queryable,
searchable relational view of boards, threads and posts.
"""

__version__ = "0.1.0"
