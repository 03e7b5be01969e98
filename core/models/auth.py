# =============================================================================
# core/models/auth.py - Authentication Models
# =============================================================================
# Pydantic models for the caller's credential and the resolved principal.
# Both live for a single request and are never persisted.
# =============================================================================

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthErrorKind(str, Enum):
    """Why a request could not be authenticated."""
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    BACKEND_FAILURE = "backend_failure"


class Credential(BaseModel):
    """
    Bearer credential presented by the caller.

    `raw` is the Authorization header exactly as received; it is forwarded
    verbatim to the identity backend and to the scoped Supabase client.
    """
    raw: str
    scheme: str = "Bearer"
    token: str

    model_config = ConfigDict(frozen=True)

    def __repr__(self) -> str:
        # Tokens must not end up in logs through repr()
        return f"Credential(scheme={self.scheme!r}, token=<redacted>)"


class Principal(BaseModel):
    """
    Authenticated identity resolved from a Credential.

    Opaque beyond its identifier: whatever else the identity backend
    returns is kept in `claims`.
    """
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    aud: Optional[str] = None
    is_anonymous: bool = False
    claims: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_user_payload(cls, payload: dict[str, Any]) -> "Principal":
        """Build from a GoTrue `/auth/v1/user` response body."""
        known = {"id", "email", "phone", "role", "aud", "is_anonymous"}
        return cls(
            id=str(payload["id"]),
            email=payload.get("email") or None,
            phone=payload.get("phone") or None,
            role=payload.get("role"),
            aud=payload.get("aud"),
            is_anonymous=bool(payload.get("is_anonymous", False)),
            claims={k: v for k, v in payload.items() if k not in known},
        )

    @classmethod
    def from_jwt_claims(cls, claims: dict[str, Any]) -> "Principal":
        """Build from decoded access-token claims (`sub` is the user id)."""
        return cls(
            id=str(claims["sub"]),
            email=claims.get("email") or None,
            phone=claims.get("phone") or None,
            role=claims.get("role"),
            aud=claims.get("aud") if isinstance(claims.get("aud"), str) else None,
            is_anonymous=bool(claims.get("is_anonymous", False)),
            claims=dict(claims),
        )
