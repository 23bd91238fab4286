import os

# must be set before backend.app.db.session is imported
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["DISCORD_WEBHOOK_URL"] = ""
os.environ["DISCORD_TRANSFER_WEBHOOK_URL"] = ""
os.environ["EMAIL_USER"] = ""
os.environ["EMAIL_PASS"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.db.base import Base
from backend.app.db.models import models_v1  # noqa: F401
from backend.app.db.models.models_v1 import Location
from backend.app.db.seed import seed_locations
from backend.services import admin_gate

from factories import ADMIN_KEY


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(admin_gate, "HASH_METHOD", "pbkdf2:sha256:1000")


@pytest.fixture(scope="function")
def session_factory():
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps the single connection alive, so every session (test,
    API requests) sees the same database.
    """
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enforce_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE RESTRICT / SET NULL unless asked
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    from backend.app.api.deps import get_db
    from backend.app.main import app

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def locations(db_session) -> dict[str, Location]:
    seed_locations(db_session)
    db_session.commit()
    return {l.name: l for l in db_session.query(Location).all()}


@pytest.fixture
def admin_headers(db_session) -> dict[str, str]:
    admin_gate.set_passphrase(db_session, ADMIN_KEY)
    db_session.commit()
    return {"X-Admin-Key": ADMIN_KEY}

