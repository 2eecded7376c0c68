"""
SQLAlchemy-backed index store.

Works against any SQLAlchemy URL; SQLite gets the extra wiring it needs for a
single writer running next to many readers.
"""

import logging
import threading
from contextlib import contextmanager, nullcontext
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..core.clock import SystemClock
from ..core.errors import StorageError
from .repository import EntityRepository
from .schema import metadata
from .store import IndexStore

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _wire_sqlite(engine: Engine, memory: bool) -> None:
    """
    Take transaction control away from the pysqlite driver.

    pysqlite defers BEGIN until the first write, which would let the cursor
    read of a replay transaction run outside it. Emitting BEGIN ourselves
    makes every transaction() and read() scope a real SQLite transaction.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        if not memory:
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA journal_mode=WAL")
            cur.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_store_engine(db_url: str, echo: bool = False) -> Engine:
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    memory = _is_memory_sqlite(url)
    kwargs = {"connect_args": {"check_same_thread": False}}
    if memory:
        # One shared connection, otherwise every checkout sees an empty database.
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **kwargs)
    _wire_sqlite(engine, memory)
    return engine


class SQLIndexStore(IndexStore):
    """
    Relational index store.

    Tables are created on open if missing. Database errors surface as
    StorageError; domain errors raised inside a transaction propagate
    unchanged after the rollback.

    An in-memory SQLite database lives on a single shared connection, so
    transaction() and read() scopes on it are serialized by a lock: a reader
    waits for the running replay transaction to finish instead of issuing a
    second BEGIN on the writer's connection. Scopes must not be nested.
    """

    def __init__(self, db_url: str, clock=None, echo: bool = False) -> None:
        """
        Open (and if needed initialise) the store.

        Args:
            db_url: SQLAlchemy URL, e.g. "sqlite:///index.sqlite3" or "sqlite://"
            clock: Time source for "now" stamps (default: SystemClock)
            echo: Log emitted SQL
        """
        self.db_url = db_url
        self.clock = clock or SystemClock()
        try:
            self.engine = create_store_engine(db_url, echo=echo)
            metadata.create_all(self.engine)
        except SQLAlchemyError as ex:
            raise StorageError(f"open store: {ex}") from ex
        self._scope_lock = threading.RLock() if _is_memory_sqlite(self.engine.url) else None
        logger.debug("Opened index store %s", self.engine.url.render_as_string(hide_password=True))

    def _exclusive(self):
        return self._scope_lock if self._scope_lock is not None else nullcontext()

    @contextmanager
    def transaction(self) -> Iterator[EntityRepository]:
        with self._exclusive():
            try:
                with self.engine.begin() as conn:
                    yield EntityRepository(conn, self.clock)
            except SQLAlchemyError as ex:
                raise StorageError(f"transaction failed: {ex}") from ex

    @contextmanager
    def read(self) -> Iterator[EntityRepository]:
        with self._exclusive():
            try:
                with self.engine.connect() as conn:
                    yield EntityRepository(conn, self.clock)
            except SQLAlchemyError as ex:
                raise StorageError(f"read failed: {ex}") from ex

    def dispose(self) -> None:
        self.engine.dispose()
