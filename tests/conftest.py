"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time; point them at a throwaway database first.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOG_LEVEL"] = "DEBUG"

import pytest
from sqlalchemy.orm import sessionmaker

from repowrap.core.context import OperationContext
from repowrap.database import (
    LiveSession,
    RecordingSession,
    SessionBackend,
    create_all_tables,
    create_db_engine,
)
from repowrap.repositories import new_repository

from entities import Widget


@pytest.fixture
def engine():
    """Fresh in-memory SQLite engine with all tables created."""
    engine = create_db_engine("sqlite:///:memory:")
    create_all_tables(engine_instance=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def live_db(session):
    """LiveSession over the in-memory database."""
    return LiveSession(SessionBackend(session))


@pytest.fixture
def recording_db():
    """RecordingSession with a fresh recorder and a clean error slot."""
    return RecordingSession()


@pytest.fixture
def ctx():
    return OperationContext.background()


@pytest.fixture
def widgets(live_db):
    """Widget repository over the live database."""
    return new_repository(Widget, live_db)
