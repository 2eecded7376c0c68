"""
Durable store and entity repository.

This module provides:
- IndexStore: Abstract transactional store interface
- SQLIndexStore: SQLAlchemy implementation (SQLite, PostgreSQL, ...)
- EntityRepository: Typed entity operations inside one transaction
- compute_view_hash: Digest of the materialized view for replica comparison
"""

from .store import IndexStore
from .sql_store import SQLIndexStore, create_store_engine
from .repository import EntityRepository
from .snapshot import compute_view_hash, serialize_view

__all__ = [
    "IndexStore",
    "SQLIndexStore",
    "create_store_engine",
    "EntityRepository",
    "compute_view_hash",
    "serialize_view",
]
