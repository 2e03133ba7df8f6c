"""SQLAlchemy engine/session helpers for the bundled ledger adapter.

Unlike a process-wide client, each opened ledger owns its engine and session
factory, so nothing here is shared between runs.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

LOCAL_DB_FILENAME = "ledger.db"


def resolve_database_url(
    server_url: str | None, *, password: str | None, data_dir: Path
) -> str:
    """Return the effective database URL.

    Falls back to a SQLite file inside ``data_dir`` when no server URL is
    configured; injects ``password`` when the URL does not carry one.
    """

    if not server_url:
        return f"sqlite+pysqlite:///{(data_dir / LOCAL_DB_FILENAME).resolve()}"
    url = make_url(server_url)
    if password and url.password is None and url.username:
        url = url.set(password=password)
    return url.render_as_string(hide_password=False)


def create_ledger_engine(database_url: str) -> Engine:
    engine = create_engine(database_url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        # Enforce FKs so account deletes cascade as declared.
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
            dbapi_conn.execute("PRAGMA foreign_keys = ON")

    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "resolve_database_url",
    "create_ledger_engine",
    "make_session_factory",
    "session_scope",
]
