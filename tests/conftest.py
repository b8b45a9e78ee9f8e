import pytest
from fastapi.testclient import TestClient

from clinic_admin.core.config import Settings, TokenMode
from clinic_admin.core.registry import RevocationRegistry
from passlib.hash import bcrypt
from clinic_admin.main import create_app
from clinic_admin.services.auth_service import TokenAuthority

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"
ACCESS_SECRET = "a" * 64
REFRESH_SECRET = "b" * 64


@pytest.fixture(scope="session")
def admin_password_hash():
    # Minimum bcrypt cost keeps the suite fast; verification is unchanged
    return bcrypt.using(rounds=4).hash(ADMIN_PASSWORD)


@pytest.fixture
def make_settings(admin_password_hash):
    """Build Settings without reading the environment or a .env file."""
    def _make(**overrides):
        values = {
            "ADMIN_USERNAME": ADMIN_USERNAME,
            "ADMIN_PASSWORD_HASH": admin_password_hash,
            "JWT_SECRET": ACCESS_SECRET,
            "JWT_REFRESH_SECRET": REFRESH_SECRET,
            "AUTH_MODE": TokenMode.ACCESS_REFRESH,
            "DATABASE_URL": "sqlite://",
            "SESSION_SWEEP_INTERVAL_SECONDS": 0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def registry():
    return RevocationRegistry()


@pytest.fixture
def authority(settings, registry):
    return TokenAuthority.from_settings(settings, registry)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def login_data():
    return {"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}


@pytest.fixture
def tokens(client, login_data):
    response = client.post("/auth/login", json=login_data)
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def auth_headers(tokens):
    return {"Authorization": f"Bearer {tokens['accessToken']}"}
