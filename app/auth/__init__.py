# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Bearer-session authentication against Supabase Auth.
#
# Usage:
#   from app.auth import AuthGate
#
#   gate = AuthGate(verifier)
#   credential, principal = await gate.authenticate(header)
# =============================================================================

from app.auth.gate import AuthGate, extract_credential, log_auth_error
from app.auth.models import UserResponse, VerifyResponse

__all__ = [
    "AuthGate",
    "extract_credential",
    "log_auth_error",
    "UserResponse",
    "VerifyResponse",
]
