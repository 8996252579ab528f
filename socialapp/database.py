# socialapp/database.py
from __future__ import annotations

from typing import Iterator

from fastapi import Request
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from socialapp.core.config import Settings

Base = declarative_base()


def create_db_engine(settings: Settings) -> Engine:
    """Build the engine for ``settings.DATABASE_URL``.

    SQLite needs two adjustments: connections are shared across the
    threadpool FastAPI runs sync routes on, and foreign keys (and with them
    ON DELETE CASCADE) are off unless switched on per connection.
    """
    url = settings.DATABASE_URL
    kwargs: dict = {"echo": settings.SQL_ECHO, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


def init_db(engine: Engine) -> None:
    # Importing the models registers their tables (and the Postgres search index DDL) on Base.metadata
    from socialapp.models import nonce, post, user  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency: one session per request, from the app's own factory."""
    session_factory: sessionmaker[Session] = request.app.state.session_factory
    db = session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
