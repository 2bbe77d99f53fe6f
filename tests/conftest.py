"""Shared fixtures: in-memory database, demo users, and an API client."""

import os

# Keep the suite clear of the per-client rate limit
os.environ.setdefault("RATE_LIMIT", "100000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from barangay_hub.auth.security import create_access_token, get_password_hash
from barangay_hub.db import Base, get_db
from barangay_hub.main import app
from barangay_hub.models.models import SystemLog, User
from barangay_hub.services.repository import Repository

PASSWORD = "password123"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db):
    return Repository(db)


def _make_user(db, username: str, role: str) -> User:
    user = User(username=username, password_hash=PASSWORD_HASH, role=role, full_name=username.title())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def resident(db):
    return _make_user(db, "juan", "resident")


@pytest.fixture
def other_resident(db):
    return _make_user(db, "maria", "resident")


@pytest.fixture
def official(db):
    return _make_user(db, "pedro", "official")


@pytest.fixture
def admin(db):
    return _make_user(db, "admin", "admin")


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


def logs_for(db, action: str):
    db.expire_all()
    return db.query(SystemLog).filter(SystemLog.action == action).all()
