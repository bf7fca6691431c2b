"""
Pytest Configuration and Shared Fixtures

Provides test fixtures, temporary stores and async support
for unit and integration tests.
"""

import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Dict, Generator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Test environment setup
os.environ["FILEVAULT_ENVIRONMENT"] = "test"

from app import create_app
from config.settings import get_settings, reload_settings
from data.database.connection import DatabaseConnection
from data.storage.user_files import UserFileStorage
from security.auth import AuthConfig, AuthenticationManager
from api.dependencies import (
    set_auth_manager,
    set_file_storage,
)

# Minimum bcrypt cost keeps the suite fast
TEST_BCRYPT_ROUNDS = 4


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def test_settings():
    """Load test settings."""
    reload_settings()  # Clear cache and reload with test environment
    return get_settings()


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset settings after each test."""
    yield
    reload_settings()


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db_path(temp_dir: Path) -> Path:
    """Create temporary store path."""
    return temp_dir / "test.db"


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def test_db(temp_db_path: Path) -> Generator[DatabaseConnection, None, None]:
    """Open a scratch store with two generic buckets."""
    db = DatabaseConnection(temp_db_path, buckets=["alpha", "beta"], max_size=4, timeout=5.0)
    db.connect()
    try:
        yield db
    finally:
        db.disconnect()


@pytest.fixture
def files_db(temp_dir: Path) -> Generator[DatabaseConnection, None, None]:
    """Open the file store (user_files, file_blobs)."""
    db = DatabaseConnection(temp_dir / "files.db", buckets=UserFileStorage.BUCKETS, max_size=8)
    db.connect()
    try:
        yield db
    finally:
        db.disconnect()


@pytest.fixture
def auth_db(temp_dir: Path) -> Generator[DatabaseConnection, None, None]:
    """Open the account store (users, tokens)."""
    db = DatabaseConnection(temp_dir / "auth.db", buckets=AuthenticationManager.BUCKETS, max_size=4)
    db.connect()
    try:
        yield db
    finally:
        db.disconnect()


@pytest.fixture
def file_storage(files_db: DatabaseConnection) -> UserFileStorage:
    """Transactional per-user file storage over the scratch file store."""
    return UserFileStorage(files_db)


@pytest.fixture
def auth_manager(auth_db: DatabaseConnection) -> AuthenticationManager:
    """Authentication manager with a fast bcrypt cost."""
    return AuthenticationManager(auth_db, AuthConfig(bcrypt_rounds=TEST_BCRYPT_ROUNDS))


# =============================================================================
# FastAPI App Fixtures
# =============================================================================

@pytest.fixture
def app(test_settings, file_storage: UserFileStorage, auth_manager: AuthenticationManager):
    """Create FastAPI app for testing wired to the scratch stores."""
    app = create_app()

    # Startup events do not run under ASGITransport; wire dependencies directly
    set_file_storage(file_storage)
    set_auth_manager(auth_manager)

    yield app

    # Reset dependencies
    set_file_storage(None)
    set_auth_manager(None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# =============================================================================
# Test Data Factories
# =============================================================================

@pytest.fixture
def credentials_factory():
    """Factory for registration/login payloads."""
    def create(username: str = "alice", password: str = "password123", **kwargs):
        return {
            "username": username,
            "password": password,
            **kwargs
        }
    return create


@pytest_asyncio.fixture
async def auth_headers(client: AsyncClient, credentials_factory) -> Dict[str, str]:
    """Register and log in a user; return the session header."""
    payload = credentials_factory()

    response = await client.post("/v1/register", json=payload)
    assert response.status_code == 204

    response = await client.post("/v1/login", json=payload)
    assert response.status_code == 200

    return {"X-Session": response.json()["token"]}
