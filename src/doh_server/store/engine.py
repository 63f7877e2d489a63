"""Database engine setup for the registry store.

SQLAlchemy Core (not ORM) is used: the DoH pipeline issues a handful of
point reads per query and never needs identity maps or unit-of-work.
"""

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from .schema import metadata


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    SQLite engines get WAL mode and foreign keys; an in-memory SQLite
    database is pinned to a single shared connection so that worker
    threads see the same data.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo)

    database = parsed.database or ""
    if database in ("", ":memory:"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    Path(database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(url: str, echo: bool = False) -> Engine:
    """Create the registry tables at ``url``.

    Idempotent: safe to call on an existing database. Returns the engine
    ready for use.
    """
    engine = create_db_engine(url, echo=echo)
    metadata.create_all(engine)
    return engine
