"""Shared fixtures: an in-memory database and authenticated API clients."""
import os

# Must be set before the application modules read their configuration
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_DISABLED"] = "1"
os.environ["MIGRATION_DELAY_SECONDS"] = "0"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from worktracker.database import Base, engine_options, get_db
from worktracker.main import app

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(SQLALCHEMY_DATABASE_URL, **engine_options(SQLALCHEMY_DATABASE_URL))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for tests."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    yield TestClient(app)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(client):
    db = TestingSessionLocal()
    yield db
    db.close()


@pytest.fixture
def login(client):
    """Register a user and return bearer headers for it."""
    def _login(email: str, password: str = "secret123", name: str = "Test User") -> dict:
        response = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "name": name},
        )
        assert response.status_code == 200, response.text
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _login


@pytest.fixture
def auth_headers(login):
    return login("alice@example.com", name="Alice")


@pytest.fixture
def other_headers(login):
    return login("bob@example.com", name="Bob")
