"""Pytest configuration and fixtures."""

import os

from cryptography.fernet import Fernet

# Set test environment variables BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-for-testing-only-32c")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-for-testing-only-32")
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "testing")

# Disable rate limiting for tests by monkey-patching BEFORE imports
from slowapi import Limiter
from slowapi.util import get_remote_address

_disabled_limiter = Limiter(key_func=get_remote_address, enabled=False)

import app.core.rate_limit as rate_limit_module
rate_limit_module.limiter = _disabled_limiter

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.api.deps import get_db
from app.models.user import Role
from app.services.auth_service import AuthService
from main import app

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database override.
    Session cookies are Secure, so the client talks HTTPS.
    """
    app.dependency_overrides[get_db] = lambda: db_session
    with TestClient(app, base_url="https://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def test_user_data():
    """Sample registration data."""
    return {
        "username": "alice",
        "email": "a@x.com",
        "password": "secret1",
    }


@pytest.fixture
def test_user_credentials(test_user_data):
    """Sample user login credentials."""
    return {
        "email": test_user_data["email"],
        "password": test_user_data["password"],
    }


@pytest.fixture
def registered_user(client, test_user_data):
    """Register the sample user through the API."""
    response = client.post("/api/auth/register", json=test_user_data)
    assert response.status_code == 201
    return response.json()["user"]


@pytest.fixture
def logged_in_client(client, registered_user, test_user_credentials):
    """Client holding access and refresh cookies for the sample user."""
    response = client.post("/api/auth/login", json=test_user_credentials)
    assert response.status_code == 200
    return client


@pytest.fixture
def admin_credentials(db_session):
    """An admin account created directly, since admins cannot self-register."""
    AuthService.register(db_session, "root", "admin@x.com", "admin-secret", role=Role.ADMIN)
    return {"email": "admin@x.com", "password": "admin-secret"}
