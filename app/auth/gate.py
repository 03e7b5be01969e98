# =============================================================================
# app/auth/gate.py - Auth Gate
# =============================================================================
# Extracts the bearer credential from the Authorization header and resolves
# it to a Principal through the configured SessionVerifier.
#
# Fail-closed: any failure of the verifier that is not an explicit rejection
# is reported as BACKEND_FAILURE, and every AuthError ends in a 401.
#
# Usage:
#   gate = AuthGate(IdentityService(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY))
#   credential, principal = await gate.authenticate(request.headers.get("authorization"))
# =============================================================================

import logging

from app.exceptions import AuthError
from core.models.auth import AuthErrorKind, Credential, Principal
from core.services.identity_service import SessionVerifier

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


def extract_credential(authorization: str | None) -> Credential | None:
    """
    Parse an Authorization header.

    Returns:
        None if the header is absent or blank, otherwise the Credential

    Raises:
        AuthError(INVALID_CREDENTIAL): header present but not "Bearer <token>"
    """
    if authorization is None or not authorization.strip():
        return None

    parts = authorization.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME or not parts[1].strip():
        raise AuthError.invalid("Malformed Authorization header (expected 'Bearer <token>')")

    return Credential(raw=authorization, scheme=parts[0], token=parts[1].strip())


class AuthGate:
    """Authenticates a request's Authorization header."""

    def __init__(self, verifier: SessionVerifier):
        self.verifier = verifier

    async def authenticate(self, authorization: str | None) -> tuple[Credential, Principal]:
        """
        Resolve the caller's identity.

        Args:
            authorization: Raw Authorization header (None when absent)

        Returns:
            Tuple of (credential, principal)

        Raises:
            AuthError: MISSING_CREDENTIAL, INVALID_CREDENTIAL or BACKEND_FAILURE
        """
        credential = extract_credential(authorization)
        if credential is None:
            raise AuthError.missing()

        try:
            principal = await self.verifier.verify_session(credential)
        except AuthError:
            raise
        except Exception as e:
            raise AuthError.backend_failure(f"Session verification failed: {e!r}") from e

        if principal is None:
            raise AuthError.invalid("Identity backend returned no principal")

        return credential, principal


def log_auth_error(exc: AuthError, path: str) -> None:
    """Backend failures are operational errors; rejected callers are warnings."""
    message = f"Authentication failed [{exc.kind.value}] on {path}: {exc.message}"
    if exc.kind is AuthErrorKind.BACKEND_FAILURE:
        logger.error(message)
    else:
        logger.warning(message)
