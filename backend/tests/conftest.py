"""
Pytest configuration for vault tests
Uses an in-memory SQLite database shared through a StaticPool
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.config import settings
from app.main import app
from app.database import Base, get_db
from app.models import User, Folder, ROOT_FOLDER_NAME
from app.utils.keys import generate_key

TEST_DATABASE_URL = "sqlite://"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine - creates/drops tables for each test"""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a fresh database session for each test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session, tmp_path, monkeypatch):
    """Create a test client with database dependency override"""
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory for users with a Root folder, bypassing the HTTP layer"""
    def _make_user(email="owner@example.com"):
        user = User(email=email, password_hash="not-used", encryption_key=generate_key())
        db_session.add(user)
        db_session.flush()
        db_session.add(Folder(name=ROOT_FOLDER_NAME, parent_id=None, user_id=user.id))
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def register(client):
    """Register through the API; returns (auth headers, response body)"""
    def _register(email="test@example.com", password="testpass123"):
        response = client.post("/api/auth/register", json={
            "email": email,
            "password": password,
        })
        assert response.status_code == 201
        data = response.json()
        return {"Authorization": f"Bearer {data['token']}"}, data
    return _register


@pytest.fixture
def root_folder_id(client):
    """Look up the Root folder ID for an authenticated user"""
    def _root_folder_id(headers):
        folders = client.get("/api/folders", headers=headers).json()
        return next(f["id"] for f in folders if f["name"] == ROOT_FOLDER_NAME and f["parent_id"] is None)
    return _root_folder_id
