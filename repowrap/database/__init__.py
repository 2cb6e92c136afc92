"""Database package."""

from repowrap.database.backend import BackendHandle, SessionBackend
from repowrap.database.results import Row, Rows
from repowrap.database.wrapper import (
    DBSession,
    LiveSession,
    RecordingSession,
    TransactionController,
)
from repowrap.database.session import (
    create_db_engine,
    get_engine,
    get_session_factory,
    dispose_engine,
    get_db_context,
    open_live_session,
    create_all_tables,
    drop_all_tables,
)

__all__ = [
    "BackendHandle",
    "SessionBackend",
    "Row",
    "Rows",
    "DBSession",
    "LiveSession",
    "RecordingSession",
    "TransactionController",
    "create_db_engine",
    "get_engine",
    "get_session_factory",
    "dispose_engine",
    "get_db_context",
    "open_live_session",
    "create_all_tables",
    "drop_all_tables",
]
