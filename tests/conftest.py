# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Provides a fake identity backend and a mock client factory
# - Builds TestClients around create_app() with injected collaborators
# =============================================================================

import os

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from app.config import Settings
from app.exceptions import AuthError
from app.main import create_app
from app.pipeline.context import RequestContext
from core.models.auth import Credential, Principal

CANONICAL_ORIGIN = "https://test-project.supabase.co"
VALID_TOKEN = "good-token"


# =============================================================================
# Fakes
# =============================================================================

class FakeVerifier:
    """
    Stand-in for the identity backend.

    Accepts VALID_TOKEN, rejects anything else. Set `error` to make every
    call raise it instead.
    """

    def __init__(self, principal: Principal | None = None, error: Exception | None = None):
        self.principal = principal or Principal(id="user-123", email="user@example.com", role="authenticated")
        self.error = error
        self.calls: list[Credential] = []

    async def verify_session(self, credential: Credential) -> Principal:
        self.calls.append(credential)
        if self.error is not None:
            raise self.error
        if credential.token != VALID_TOKEN:
            raise AuthError.invalid("Identity backend rejected credential (HTTP 401)")
        return self.principal


def make_settings(**overrides) -> Settings:
    values = {
        "SUPABASE_URL": CANONICAL_ORIGIN,
        "SUPABASE_ANON_KEY": "test-anon-key",
        "SUPABASE_SERVICE_KEY": "test-service-key",
        "ALLOWED_ORIGINS": "*",
        "ENVIRONMENT": "development",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_context(
    method: str = "GET",
    path: str = "/test",
    headers: dict[str, str] | None = None,
    sent: list | None = None,
) -> RequestContext:
    """Build a RequestContext around a bare ASGI scope, capturing sent messages."""
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [
            (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
        ],
    }
    messages = sent if sent is not None else []

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        messages.append(message)

    return RequestContext(request=Request(scope, receive), send=send)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def scoped_client() -> MagicMock:
    return MagicMock(name="scoped_client")


@pytest.fixture
def client_factory(scoped_client) -> MagicMock:
    factory = MagicMock(name="client_factory", return_value=scoped_client)
    factory.admin.return_value = MagicMock(name="admin_client")
    return factory


@pytest.fixture
def build_client(verifier, client_factory):
    """Factory fixture: build a TestClient with optional settings overrides."""
    def _build(**overrides) -> TestClient:
        app = create_app(
            make_settings(**overrides),
            verifier=verifier,
            client_factory=client_factory,
        )
        return TestClient(app)
    return _build


@pytest.fixture
def client(build_client) -> TestClient:
    return build_client()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}
