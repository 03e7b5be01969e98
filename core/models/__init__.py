# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas shared by the gateway:
# - auth.py: Credential, Principal and the auth failure taxonomy
# - cors.py: CORS constants and CorsDecision
#
# These models define the "contract" between the pipeline stages.
# =============================================================================

from .auth import AuthErrorKind, Credential, Principal
from .cors import (
    ALLOWED_REQUEST_HEADERS,
    DEFAULT_ALLOWED_METHODS,
    CorsDecision,
    HTTPMethod,
)

__all__ = [
    # Auth
    "AuthErrorKind",
    "Credential",
    "Principal",
    # CORS
    "ALLOWED_REQUEST_HEADERS",
    "DEFAULT_ALLOWED_METHODS",
    "CorsDecision",
    "HTTPMethod",
]
