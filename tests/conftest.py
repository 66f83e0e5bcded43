"""Shared test fixtures and configuration.

Points the app at an in-memory SQLite database and swaps Firebase token
verification for a fake where the bearer token is the user id.
"""

import os

# Patch env vars BEFORE any dormduty imports
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["GEMINI_API_KEY"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.setdefault("FIREBASE_PROJECT_ID", "test-project")
os.environ.pop("REDIS_URL", None)

from typing import Optional

import pytest
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient

from dormduty.auth import bearer_scheme, get_token_claims
from dormduty.database import Base, SessionLocal, engine
from dormduty.main import app
from dormduty.models import Room, User


async def fake_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized - No valid authentication token")
    return {"sub": credentials.credentials}


@pytest.fixture
def headers():
    """Headers for a request made as the given user id"""

    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {user_id}"}

    return _headers


@pytest.fixture
def db():
    """A session on a freshly created schema"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_token_claims] = fake_token_claims
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create a registered user, optionally in a room"""

    def _make_user(user_id: str, name: Optional[str] = None, room: Optional[Room] = None, aura: int = 0) -> User:
        user = User(
            id=user_id,
            name=name or user_id.capitalize(),
            email=f"{user_id}@example.com",
            aura_points=aura,
            room_id=room.id if room else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def room(db):
    room = Room(name="Room 101", created_by="alice")
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture
def other_room(db):
    room = Room(name="Room 202", created_by="mallory")
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@pytest.fixture
def roommates(room, make_user):
    """alice, bob and carol sharing one room"""
    return [
        make_user("alice", room=room),
        make_user("bob", room=room),
        make_user("carol", room=room),
    ]
