from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from hunting_buddy.app.core.config import Settings
from hunting_buddy.app.core.security import TOKEN_COOKIE_NAME, create_access_token
from hunting_buddy.app.database.database import get_db
from hunting_buddy.app.main import create_app

USER_ID = "64b7f0c2a1b2c3d4e5f60718"
OTHER_USER_ID = "64b7f0c2a1b2c3d4e5f60799"
JOB_ID = "65a1b2c3d4e5f60718293a4b"


def make_settings(**overrides) -> Settings:
    """Build settings for tests without reading a dotenv file."""
    values = {
        "MONGO_URL": "mongodb://localhost:27017/hunting_buddy_test",
        "JWT_SECRET": "test-secret-key",
        "NODE_ENV": "test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def static_dir(tmp_path):
    """Fixture providing an empty static directory."""
    directory = tmp_path / "dist"
    directory.mkdir()
    return directory


@pytest.fixture
def settings(static_dir) -> Settings:
    return make_settings(STATIC_DIR=str(static_dir))


@pytest.fixture
def mock_db():
    """Fixture to provide a mock database handle."""
    return MagicMock()


@pytest.fixture
def app(settings, mock_db) -> FastAPI:
    """Fixture to create a new app for each test with the database mocked out."""
    _app = create_app(settings)
    _app.dependency_overrides[get_db] = lambda: mock_db
    yield _app
    _app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Fixture to create an unauthenticated test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def user_client(app: FastAPI, settings: Settings) -> TestClient:
    """Fixture to create a test client holding a regular user's token cookie."""
    token = create_access_token({"userId": USER_ID, "role": "user"}, settings)
    with TestClient(app) as c:
        c.cookies.set(TOKEN_COOKIE_NAME, token)
        yield c


@pytest.fixture
def admin_client(app: FastAPI, settings: Settings) -> TestClient:
    """Fixture to create a test client holding an admin's token cookie."""
    token = create_access_token({"userId": OTHER_USER_ID, "role": "admin"}, settings)
    with TestClient(app) as c:
        c.cookies.set(TOKEN_COOKIE_NAME, token)
        yield c
