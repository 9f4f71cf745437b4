"""SQLAlchemy engine and session plumbing for the BookTech store.

The engine is built lazily on first use. ``BOOKTECH_DB_PATH=:memory:`` gives
a single shared in-memory connection (used by the test suite); any other value
is a SQLite file whose directory is created on demand. File databases run in
WAL mode with every unit of work opened as ``BEGIN IMMEDIATE``, so concurrent
requests serialize instead of racing between a read and the write after it.
"""
from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

try:  # POSIX only; serializes CREATE TABLE across gunicorn workers
    import fcntl  # type: ignore
except ImportError:  # pragma: no cover
    fcntl = None  # type: ignore

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from booktech import config as app_config
from booktech.db.models import Base
from booktech.utils.logging import get_logger

LOG = get_logger("booktech.db")

MEMORY = ":memory:"
SCHEMA_LOCK_NAME = ".booktech_schema.lock"
BUSY_TIMEOUT_MS = 5000

_engine: Optional[Engine] = None
_scoped: Optional[scoped_session] = None
_LOCK = threading.Lock()


def _set_sqlite_pragmas(dbapi_conn, _record) -> None:
    # transactions are opened explicitly by _begin_immediate
    dbapi_conn.isolation_level = None
    cursor = dbapi_conn.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
    finally:
        cursor.close()


def _begin_immediate(conn) -> None:
    """Take the write lock up front so read-then-write units of work serialize."""
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def _build_engine(db_path: str) -> Engine:
    if db_path == MEMORY:
        return create_engine(
            "sqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    folder = os.path.dirname(os.path.abspath(db_path)) or "."
    os.makedirs(folder, exist_ok=True)
    if not os.access(folder, os.W_OK):
        raise RuntimeError(f"database directory not writable: {folder}")
    engine = create_engine(f"sqlite:///{db_path}", future=True)
    event.listen(engine, "connect", _set_sqlite_pragmas)
    event.listen(engine, "begin", _begin_immediate)
    return engine


def _create_schema(engine: Engine) -> None:
    try:
        Base.metadata.create_all(engine)
    except OperationalError as exc:  # pragma: no cover
        if "already exists" not in str(exc).lower():
            raise
        LOG.warning("Another worker created the schema first")


def _create_schema_locked(engine: Engine, db_path: str) -> None:
    if db_path == MEMORY or fcntl is None:
        _create_schema(engine)
        return
    lock_path = os.path.join(os.path.dirname(os.path.abspath(db_path)), SCHEMA_LOCK_NAME)
    with open(lock_path, "w") as handle:
        fcntl.flock(handle, fcntl.LOCK_EX)
        try:
            _create_schema(engine)
        finally:
            fcntl.flock(handle, fcntl.LOCK_UN)


def init_engine_once() -> None:
    """Build the engine, session registry and schema on first call."""
    global _engine, _scoped
    if _engine is not None:
        return
    with _LOCK:
        if _engine is not None:
            return
        db_path = app_config.get_db_path()
        LOG.info("Opening store database at %s", db_path)
        engine = _build_engine(db_path)
        _create_schema_locked(engine, db_path)
        _scoped = scoped_session(sessionmaker(bind=engine, expire_on_commit=False, class_=Session))
        _engine = engine
        LOG.debug("Store schema ready tables=%s", len(Base.metadata.tables))


def get_engine() -> Engine:
    init_engine_once()
    return _engine  # type: ignore[return-value]


def get_scoped_session() -> scoped_session:
    init_engine_once()
    if _scoped is None:
        raise RuntimeError("Session registry is not available.")
    return _scoped


@contextmanager
def app_session() -> Iterator[Session]:
    """Unit of work: commit on success, roll back and re-raise on error."""
    session = get_scoped_session()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def remove_scoped_session(_exc: Optional[BaseException] = None) -> None:
    if _scoped is not None:
        _scoped.remove()


def reset_for_tests(drop: bool = False) -> None:
    """Forget the engine so the next call rebuilds it from the environment."""
    global _engine, _scoped
    with _LOCK:
        if _scoped is not None:
            _scoped.remove()
        if _engine is not None:
            if drop:
                Base.metadata.drop_all(_engine)
            _engine.dispose()
        _engine = None
        _scoped = None


__all__ = [
    "init_engine_once",
    "get_engine",
    "get_scoped_session",
    "app_session",
    "remove_scoped_session",
    "reset_for_tests",
]
