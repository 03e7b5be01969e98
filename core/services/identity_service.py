# =============================================================================
# core/services/identity_service.py - Session Verification
# =============================================================================
# Resolves a caller's bearer credential into a Principal.
#
# Two verifiers share the same contract (`verify_session(credential)`):
# - IdentityService: asks Supabase Auth (GoTrue) over HTTP. This is the
#   default and the only one that notices revoked sessions.
# - JwtSessionVerifier: checks an HS256 access token locally with the
#   project's JWT secret. Used when SUPABASE_JWT_SECRET is configured.
#
# Both raise AuthError. BACKEND_FAILURE means the verdict is unknown; callers
# must still deny access.
# =============================================================================

import asyncio
import logging
from typing import Any, Protocol

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from app.exceptions import AuthError
from core.models.auth import Credential, Principal

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class SessionVerifier(Protocol):
    """Anything that can turn a Credential into a Principal."""

    async def verify_session(self, credential: Credential) -> Principal:
        ...


class IdentityService:
    """
    Client for the Supabase Auth user endpoint.

    Sends `GET {base_url}/auth/v1/user` with the project's anon key and the
    caller's Authorization header forwarded verbatim.

    Example:
        identity = IdentityService(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
        principal = await identity.verify_session(credential)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._http_client = http_client

    @property
    def user_url(self) -> str:
        return f"{self.base_url}/auth/v1/user"

    @property
    def health_url(self) -> str:
        return f"{self.base_url}/auth/v1/health"

    async def _get(self, url: str, headers: dict[str, str]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(url, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, headers=headers)

    async def verify_session(self, credential: Credential) -> Principal:
        """
        Ask the identity backend who owns this credential.

        Returns:
            Principal for the session owner

        Raises:
            AuthError(INVALID_CREDENTIAL): backend rejected the token or
                returned no user
            AuthError(BACKEND_FAILURE): backend unreachable, timed out,
                answered 5xx or returned an unreadable body
        """
        headers = {"apikey": self.api_key, "Authorization": credential.raw}

        try:
            response = await asyncio.wait_for(
                self._get(self.user_url, headers), timeout=self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise AuthError.backend_failure(
                f"Identity backend did not answer within {self.timeout}s"
            )
        except httpx.HTTPError as e:
            raise AuthError.backend_failure(f"Identity backend request failed: {e}")

        if response.status_code >= 500:
            raise AuthError.backend_failure(
                f"Identity backend returned HTTP {response.status_code}"
            )
        if response.status_code >= 400:
            raise AuthError.invalid(
                f"Identity backend rejected credential (HTTP {response.status_code})"
            )

        try:
            payload = response.json()
        except ValueError:
            raise AuthError.backend_failure("Identity backend returned a non-JSON body")

        if not isinstance(payload, dict) or not payload.get("id"):
            raise AuthError.invalid("Identity backend returned no user for credential")

        principal = Principal.from_user_payload(payload)
        logger.debug(f"Verified session for user: {principal.id}")
        return principal

    async def ping(self) -> bool:
        """Check that the identity backend is reachable (used by readiness)."""
        try:
            response = await asyncio.wait_for(
                self._get(self.health_url, {"apikey": self.api_key}),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as e:
            logger.warning(f"Identity backend health check failed: {e}")
            return False
        return response.status_code < 400


class JwtSessionVerifier:
    """
    Verifies Supabase HS256 access tokens without a network round trip.

    Tokens must carry audience "authenticated" and a `sub` claim.
    """

    algorithm = "HS256"

    def __init__(self, secret: str, audience: str = "authenticated"):
        self.secret = secret
        self.audience = audience

    async def verify_session(self, credential: Credential) -> Principal:
        try:
            payload: dict[str, Any] = jwt.decode(
                credential.token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
            )
        except ExpiredSignatureError:
            raise AuthError.invalid("Token has expired")
        except JWTError as e:
            raise AuthError.invalid(f"Invalid token: {e}")

        if not payload.get("sub"):
            raise AuthError.invalid("Invalid token: missing user ID")

        return Principal.from_jwt_claims(payload)
