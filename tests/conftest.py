from __future__ import annotations

import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app.core.config import settings
from app.db.base import Base
from app.db.session import get_db
from app.main import app as fastapi_app

# Register every mapped table on Base.metadata
import app.models  # noqa: F401


@pytest.fixture(scope="session")
def engine():
    # One shared in-memory connection so the API and the test session see the same rows.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@pytest.fixture(scope="function")
def session_factory(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def tracking_settings(monkeypatch):
    """Pin tracking settings so a developer's .env never leaks into tests."""
    monkeypatch.setattr(settings, "SEARATES_API_KEY", "")
    monkeypatch.setattr(settings, "TRACKING_LIVE_STATUS", "IN_TRANSIT")
    monkeypatch.setattr(settings, "TRACKING_NOTIFICATION_LINK", "/admin/live-shipments")
    monkeypatch.setattr(settings, "FLOW_LOGS_ENABLED", False)
    return settings


@pytest.fixture(scope="function")
def client(session_factory, db_session):
    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()
