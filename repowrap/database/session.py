"""
Database Session Management
============================

Engine and session factories, plus helpers that hand out session wrappers
over them. Wiring beyond this (pooling policy, migrations, dependency
injection) belongs to the application.
"""

import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from repowrap.config import settings
from repowrap.core.logging import get_logger
from repowrap.database.backend import SessionBackend
from repowrap.database.wrapper import LiveSession

logger = get_logger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """Create and configure a database engine (defaults to settings.database_url)."""
    database_url = database_url or settings.database_url

    # SQLite-specific configuration
    if database_url.startswith("sqlite"):
        # Ensure data directory exists
        if ":///" in database_url:
            db_path = database_url.split(":///")[1]
            if not db_path.startswith(":memory:"):
                db_dir = os.path.dirname(db_path)
                if db_dir and not os.path.exists(db_dir):
                    os.makedirs(db_dir, exist_ok=True)

        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.app_debug
        )

        # Enforce foreign keys; take BEGIN away from pysqlite so SAVEPOINTs nest
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            dbapi_conn.isolation_level = None
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def emit_sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN")

    else:
        engine = create_engine(database_url, echo=settings.app_debug, pool_pre_ping=True)

    logger.debug("engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


def get_engine() -> Engine:
    """Return the shared engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """
    Return the shared session factory.

    expire_on_commit is off: outside a transaction every backend operation
    commits, and loaded entities must stay readable afterwards.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def dispose_engine() -> None:
    """Dispose of the shared engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        _engine = None
    _session_factory = None


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for raw database sessions.

    Usage:
        with get_db_context() as db:
            # do stuff with db
            ...
    """
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def open_live_session() -> Generator[LiveSession, None, None]:
    """
    Yield a LiveSession over a fresh ORM session, closing it afterwards.

    Usage:
        with open_live_session() as db:
            repo = new_repository(Widget, db)
            repo.create(ctx, Widget(name="bolt"))
    """
    session = get_session_factory()()
    try:
        yield LiveSession(SessionBackend(session))
    finally:
        session.close()


def create_all_tables(metadata=None, engine_instance=None):
    """Create all tables in the database (defaults to repowrap's Base metadata)."""
    from repowrap.models.base import Base

    if metadata is None:
        metadata = Base.metadata
    if engine_instance is None:
        engine_instance = get_engine()

    metadata.create_all(bind=engine_instance)


def drop_all_tables(metadata=None, engine_instance=None):
    """Drop all tables in the database."""
    from repowrap.models.base import Base

    if metadata is None:
        metadata = Base.metadata
    if engine_instance is None:
        engine_instance = get_engine()

    metadata.drop_all(bind=engine_instance)
