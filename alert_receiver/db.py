"""Engine, session factory and transactional helpers."""
from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from alert_receiver.config import get_settings
from alert_receiver.models.base import Base

# Seconds SQLite waits on a locked database file before raising.
SQLITE_BUSY_TIMEOUT = 15

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _engine_options(url: str) -> dict[str, object]:
    if _is_sqlite(url):
        # Webhook jobs run on the scheduler's worker threads.
        return {"connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}}
    return {"pool_pre_ping": True}


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``url`` with the options this service relies on."""

    return create_engine(url, future=True, echo=echo, **_engine_options(url))


def build_sessionmaker(bind: Engine) -> sessionmaker[Session]:
    """Sessions never autoflush; services flush explicitly before querying."""

    return sessionmaker(bind=bind, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


def init_engine() -> Engine:
    """Create the process-wide engine on first use."""

    global _engine, _session_factory
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, echo=settings.database_echo)
        _session_factory = build_sessionmaker(_engine)
    return _engine


def get_engine() -> Engine:
    return _engine if _engine is not None else init_engine()


def get_sessionmaker() -> sessionmaker[Session]:
    if _session_factory is None:
        init_engine()
    assert _session_factory is not None  # for type-checkers
    return _session_factory


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # pragma: no cover
    """Topic, receiver and alert cascades depend on SQLite enforcing foreign keys."""

    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_all(engine: Engine | None = None) -> None:
    """Create every table and index declared on the models."""

    Base.metadata.create_all(bind=engine or get_engine())


def close_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """Yield a session that is rolled back if the block raises, and always closed.

    Committing is left to the block, since jobs commit at their own checkpoints.
    """

    session = (factory or get_sessionmaker())()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request."""

    with session_scope() as session:
        yield session


__all__ = [
    "build_engine",
    "build_sessionmaker",
    "close_engine",
    "create_all",
    "get_db",
    "get_engine",
    "get_sessionmaker",
    "init_engine",
    "session_scope",
]
