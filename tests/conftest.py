"""Shared fixtures: isolated stores, a controllable clock and an API client."""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.security import AuthUser, create_access_token
from app.db.base import Base
from app.main import app
from app.models import StorageEntry  # noqa: F401  registers the table
from app.services.document_service import DocumentService
from app.services.storage import DatabaseStore, MemoryStore, get_store


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def service(store, clock):
    return DocumentService(store, clock=clock)


@pytest.fixture
def alice():
    return AuthUser(id="user-alice", given_name="Alice", family_name="Smith", email="alice@example.com")


@pytest.fixture
def bob():
    return AuthUser(id="user-bob", given_name="Bob")


@pytest.fixture
def db_session():
    """In-memory SQLite session; a fresh database per test."""
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def db_store(db_session):
    return DatabaseStore(db_session)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_headers(user_id: str, **claims) -> dict:
    token = create_access_token({"sub": user_id, **claims})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_headers():
    return make_headers("user-alice", given_name="Alice", family_name="Smith", email="alice@example.com")


@pytest.fixture
def bob_headers():
    return make_headers("user-bob", given_name="Bob")
