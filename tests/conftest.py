"""Pytest fixtures and configuration for incantations tests."""

import os

# Keep app startup (init_db) away from any on-disk database.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import copy
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from incantations.database.database import Base, get_db
from incantations.database import models  # noqa: F401
from incantations.auth.jwt import TokenAuthority


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

ISSUED_AT = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    Foreign keys are enabled by the engine connect listener in database.py.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def _add_user(session: Session, email: str, name: str):
    from incantations.database.models import UserDB

    now = datetime.utcnow()
    user_db = UserDB(email=email, name=name, created_at=now, updated_at=now)
    session.add(user_db)
    session.commit()
    session.refresh(user_db)
    return user_db.to_pydantic()


@pytest.fixture
def test_user(db_session: Session):
    """User A, persisted."""
    return _add_user(db_session, "a@x.com", "A")


@pytest.fixture
def other_user(db_session: Session):
    """User B, persisted (for ownership isolation checks)."""
    return _add_user(db_session, "b@x.com", "B")


@pytest.fixture
def token_authority():
    """Token authority with a fixed test secret and the real clock."""
    return TokenAuthority(secret_key="test-secret-key")


@pytest.fixture
def frozen_authority():
    """Factory for authorities whose clock is pinned at ISSUED_AT + offset."""
    def _make(offset: timedelta = timedelta(0), secret_key: str = "test-secret-key") -> TokenAuthority:
        return TokenAuthority(secret_key=secret_key, clock=lambda: ISSUED_AT + offset)
    return _make


@pytest.fixture
def auth_headers(token_authority, test_user):
    """Bearer header for the test user."""
    return {"Authorization": f"Bearer {token_authority.issue(test_user)}"}


@pytest.fixture
def test_client(db_session: Session, token_authority):
    """Create a FastAPI test client with overridden database and token dependencies."""
    from incantations.api.app import app
    from incantations.auth.dependencies import get_token_authority

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_authority] = lambda: token_authority

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


SNAPSHOT_PAYLOAD = {
    "tasks": [
        {
            "id": "t1",
            "title": "Buy milk",
            "priority": "low",
            "status": "pending",
            "tags": [],
            "createdAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-01-01T00:00:00Z",
        },
        {
            "id": "t2",
            "title": "Ship release",
            "description": "Cut the 1.0 tag",
            "priority": "urgent",
            "status": "in-progress",
            "dueDate": "2024-01-05T17:00:00Z",
            "project": "work",
            "tags": ["release", "q1"],
            "createdAt": "2024-01-02T09:30:00Z",
            "updatedAt": "2024-01-03T10:00:00Z",
            "extractedFrom": "conversation",
        },
    ],
    "conversations": [
        {
            "id": "c1",
            "title": "Planning",
            "summary": "Weekly plan",
            "messages": [
                {
                    "id": "m1",
                    "type": "user",
                    "content": "Remind me to ship the release",
                    "timestamp": "2024-01-02T09:00:00Z",
                    "isVoiceInput": True,
                    "extractedTasks": ["t2"],
                    "metadata": {"lang": "en"},
                },
                {
                    "id": "m2",
                    "type": "assistant",
                    "content": "Added 'Ship release'.",
                    "timestamp": "2024-01-02T09:00:05Z",
                },
            ],
            "createdAt": "2024-01-02T09:00:00Z",
            "updatedAt": "2024-01-02T09:00:05Z",
        }
    ],
    "preferences": {"theme": "dark", "voice": {"rate": 1.2}},
}


@pytest.fixture
def snapshot_payload():
    """A valid upload payload (fresh deep copy per test)."""
    return copy.deepcopy(SNAPSHOT_PAYLOAD)
