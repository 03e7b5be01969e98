# =============================================================================
# tests/test_gateway.py - End-to-End Pipeline Tests
# =============================================================================
# Requests go through create_app() with a fake identity backend and a mock
# client factory. Covers CORS, authentication, route coverage and failure
# handling as seen by an HTTP caller.
# =============================================================================

import logging

import pytest

from app.exceptions import AuthError
from app.pipeline import RouteGroup
from tests.conftest import CANONICAL_ORIGIN, VALID_TOKEN

CORS_HEADERS = (
    "access-control-allow-origin",
    "access-control-allow-headers",
    "access-control-allow-credentials",
    "access-control-allow-methods",
)

FUNCTION_URL = "/functions/v1/api"


# =============================================================================
# CORS
# =============================================================================

class TestCors:
    """CORS headers on pipeline routes."""

    def test_allowed_origin_is_reflected(self, build_client, auth_headers):
        """An allowed Origin is echoed back verbatim."""
        client = build_client(ALLOWED_ORIGINS="https://app.example.com")

        response = client.get(
            "/api/v1/auth/verify",
            headers={**auth_headers, "Origin": "https://app.example.com"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://app.example.com"

    def test_disallowed_origin_is_not_reflected(self, build_client, auth_headers):
        """A disallowed Origin gets the canonical origin and a 403."""
        # Arrange: Only app.example.com is allowed
        client = build_client(ALLOWED_ORIGINS="https://app.example.com")

        # Act: Call from another origin with a valid token
        response = client.get(
            "/api/v1/auth/verify",
            headers={**auth_headers, "Origin": "https://evil.example.com"},
        )

        # Assert: Rejected, and the foreign origin is never echoed
        assert response.headers["access-control-allow-origin"] == CANONICAL_ORIGIN
        assert response.status_code == 403
        assert response.text == "Forbidden"

    def test_disallowed_origin_proceeds_when_not_enforced(self, build_client, auth_headers):
        """With enforcement off, the browser is left to block the response."""
        client = build_client(
            ALLOWED_ORIGINS="https://app.example.com",
            CORS_ENFORCE_ORIGIN=False,
        )

        response = client.get(
            "/api/v1/auth/verify",
            headers={**auth_headers, "Origin": "https://evil.example.com"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == CANONICAL_ORIGIN

    def test_wildcard_subdomain_pattern(self, build_client, auth_headers):
        """Embedded wildcards match preview subdomains."""
        client = build_client(ALLOWED_ORIGINS="http://localhost:3000, https://*.example.com")

        response = client.get(
            "/api/v1/auth/verify",
            headers={**auth_headers, "Origin": "https://preview-7.example.com"},
        )

        assert response.headers["access-control-allow-origin"] == "https://preview-7.example.com"

    def test_allow_methods_follow_route_group(self, client, auth_headers):
        """Each group advertises its own allowed methods."""
        auth_response = client.get("/api/v1/auth/verify", headers=auth_headers)
        function_response = client.post(FUNCTION_URL, headers=auth_headers, json={})

        assert auth_response.headers["access-control-allow-methods"] == "GET, OPTIONS"
        assert function_response.headers["access-control-allow-methods"] == "POST, OPTIONS"

    @pytest.mark.parametrize("origin", ["https://a.io", "http://localhost:5173", None])
    def test_preflight_is_empty_200_with_all_headers(self, client, verifier, origin):
        """Preflight answers 200 with an empty body and every CORS header."""
        headers = {"Access-Control-Request-Method": "POST"}
        if origin:
            headers["Origin"] = origin

        response = client.options(FUNCTION_URL, headers=headers)

        assert response.status_code == 200
        assert response.content == b""
        for name in CORS_HEADERS:
            assert name in response.headers
        assert response.headers["access-control-allow-headers"] == (
            "authorization, x-client-info, apikey, content-type"
        )
        assert response.headers["access-control-allow-credentials"] == "true"
        # Preflight never authenticates
        assert verifier.calls == []

    def test_preflight_from_disallowed_origin_still_200(self, build_client):
        """Preflight is never rejected; the fallback origin tells the browser."""
        client = build_client(ALLOWED_ORIGINS="https://app.example.com")

        response = client.options(FUNCTION_URL, headers={"Origin": "https://evil.example.com"})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == CANONICAL_ORIGIN


# =============================================================================
# Route coverage
# =============================================================================

class TestGroupPrefix:
    """Every path under a group prefix runs through the pipeline."""

    @pytest.mark.parametrize("path", [f"{FUNCTION_URL}/", f"{FUNCTION_URL}/items", f"{FUNCTION_URL}/a/b"])
    def test_preflight_under_prefix(self, client, verifier, path):
        """Preflight to any subpath or a trailing slash is an empty 200."""
        # Act: Preflight without following redirects
        response = client.options(
            path,
            headers={"Origin": "https://a.io", "Access-Control-Request-Method": "POST"},
            follow_redirects=False,
        )

        # Assert: Answered in place, with CORS headers, no auth
        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "https://a.io"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
        assert verifier.calls == []

    def test_unauthenticated_subpath_is_401(self, client):
        """Unknown paths are not revealed to anonymous callers."""
        response = client.post(f"{FUNCTION_URL}/items", json={})

        assert response.status_code == 401
        assert response.text == "Unauthorized"
        assert "access-control-allow-origin" in response.headers

    def test_authenticated_unknown_subpath_is_404(self, client, auth_headers):
        """After auth, a path with no route is a plain-text 404."""
        response = client.post(f"{FUNCTION_URL}/items", headers=auth_headers, json={})

        assert response.status_code == 404
        assert response.text == "Not Found"
        assert response.headers["content-type"].startswith("text/plain")
        assert "access-control-allow-origin" in response.headers

    def test_trailing_slash_reaches_handler(self, client, auth_headers):
        """A trailing slash is handled in place, not redirected."""
        response = client.post(
            f"{FUNCTION_URL}/",
            headers=auth_headers,
            json={"ping": True},
            follow_redirects=False,
        )

        assert response.status_code == 200
        assert response.json() == {"user_id": "user-123", "payload": {"ping": True}}

    def test_auth_group_subpaths_are_covered(self, client):
        """The auth group also protects paths it does not route."""
        response = client.get("/api/v1/auth/unknown")

        assert response.status_code == 401


# =============================================================================
# Authentication
# =============================================================================

class TestAuthentication:
    """401 semantics and context binding."""

    def test_missing_authorization_is_401(self, client, verifier):
        """No Authorization header: 401 without calling the backend."""
        response = client.post(FUNCTION_URL, json={"a": 1})

        assert response.status_code == 401
        assert response.text == "Unauthorized"
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["www-authenticate"] == "Bearer"
        assert verifier.calls == []

    def test_401_still_carries_cors_headers(self, client):
        """The browser can read the 401 because CORS headers are kept."""
        response = client.post(FUNCTION_URL, headers={"Origin": "https://a.io"})

        assert response.status_code == 401
        for name in CORS_HEADERS:
            assert name in response.headers

    def test_rejected_token_calls_backend_once(self, client, verifier, client_factory):
        """A revoked token is checked once and never gets a client."""
        response = client.post(
            FUNCTION_URL,
            headers={"Authorization": "Bearer revoked-token"},
            json={},
        )

        assert response.status_code == 401
        assert len(verifier.calls) == 1
        assert verifier.calls[0].token == "revoked-token"
        client_factory.assert_not_called()

    def test_backend_failure_is_401_not_500(self, build_client, verifier, caplog):
        """An unreachable identity backend fails closed and logs an error."""
        # Arrange: Backend times out
        verifier.error = AuthError.backend_failure("Identity backend did not answer within 5.0s")
        client = build_client()

        # Act
        with caplog.at_level(logging.WARNING, logger="app.auth.gate"):
            response = client.post(FUNCTION_URL, headers={"Authorization": f"Bearer {VALID_TOKEN}"})

        # Assert: 401 to the caller, ERROR in the log
        assert response.status_code == 401
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert any("backend_failure" in r.getMessage() for r in errors)

    def test_crashing_backend_is_401(self, build_client, verifier):
        """An unexpected verifier exception is still a 401."""
        verifier.error = TimeoutError("read timeout")
        client = build_client()

        response = client.post(FUNCTION_URL, headers={"Authorization": f"Bearer {VALID_TOKEN}"})

        assert response.status_code == 401

    def test_valid_token_binds_scoped_client(self, client, client_factory, scoped_client, auth_headers):
        """A valid caller gets a client built from their own credential."""
        response = client.post(FUNCTION_URL, headers=auth_headers, json={"ping": True})

        assert response.status_code == 200
        assert response.json() == {"user_id": "user-123", "payload": {"ping": True}}
        credential = client_factory.call_args.args[0]
        assert credential.raw == f"Bearer {VALID_TOKEN}"
        client_factory.admin.assert_not_called()

    def test_unsupported_method_after_auth_is_405(self, client, auth_headers):
        """Methods with no handler get 405 and an Allow header."""
        response = client.delete("/api/v1/auth/verify", headers=auth_headers)

        assert response.status_code == 405
        assert response.headers["allow"] == "GET, OPTIONS"


# =============================================================================
# Failure handling
# =============================================================================

class TestFailures:
    """Unhandled failures become a generic 500."""

    def test_client_factory_crash_is_generic_500(self, build_client, client_factory, auth_headers):
        """Client creation errors never leak their message."""
        client_factory.side_effect = RuntimeError("SUPABASE_SERVICE_KEY=sk-secret")
        client = build_client()

        response = client.post(FUNCTION_URL, headers=auth_headers)

        assert response.status_code == 500
        assert response.text == "Internal Server Error"
        assert "sk-secret" not in response.text
        assert "access-control-allow-origin" in response.headers

    def test_handler_crash_is_generic_500(self, build_client, auth_headers, caplog):
        """A handler exception is logged in full and answered with a bare 500."""
        # Arrange: Register a group whose handler raises
        client = build_client()
        group = RouteGroup("/functions/v1/crash", allowed_methods=["GET", "OPTIONS"])

        @group.route("/", methods=["GET"])
        async def crash(context):
            raise KeyError("internal-table-name")

        client.app.state.gateway.include(client.app, group)

        # Act
        with caplog.at_level(logging.ERROR):
            response = client.get("/functions/v1/crash", headers=auth_headers)

        # Assert: Detail only in the log
        assert response.status_code == 500
        assert response.text == "Internal Server Error"
        assert "internal-table-name" not in response.text
        assert "internal-table-name" in caplog.text

    def test_invalid_json_body_is_400(self, client, auth_headers):
        """A malformed JSON body is the caller's error, not a 500."""
        response = client.post(
            FUNCTION_URL,
            headers={**auth_headers, "Content-Type": "application/json"},
            content=b"{not json",
        )

        assert response.status_code == 400


def test_requests_do_not_share_context(build_client):
    """Test that one caller's principal never reaches the next request."""
    client = build_client()

    first = client.post(FUNCTION_URL, headers={"Authorization": f"Bearer {VALID_TOKEN}"}, json=1)
    second = client.post(FUNCTION_URL, json=2)

    assert first.status_code == 200
    assert first.json()["user_id"] == "user-123"
    assert second.status_code == 401
