# =============================================================================
# app/exceptions.py - Custom Exceptions and Handlers
# =============================================================================
# Centralized exception handling for the gateway.
#
# Pipeline routes never surface these as JSON: the auth stage turns AuthError
# into a plain 401 and the failure guard turns everything else into a plain
# 500. The JSON handlers below serve the plain FastAPI routes (health, root).
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from core.models.auth import AuthErrorKind


class GatewayException(Exception):
    """
    Base exception for the gateway.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "GATEWAY_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Auth Exceptions
# =============================================================================

class AuthError(GatewayException):
    """
    Raised when a request cannot be authenticated.

    Every kind maps to 401: if the identity of the caller cannot be
    positively confirmed, access is denied.
    """

    def __init__(self, kind: AuthErrorKind, message: str):
        super().__init__(
            message=message,
            code=kind.name,
            status_code=401,
            suggestion="Send a valid session token as 'Authorization: Bearer <token>'",
        )
        self.kind = kind

    @classmethod
    def missing(cls) -> "AuthError":
        return cls(AuthErrorKind.MISSING_CREDENTIAL, "No Authorization header provided")

    @classmethod
    def invalid(cls, message: str) -> "AuthError":
        return cls(AuthErrorKind.INVALID_CREDENTIAL, message)

    @classmethod
    def backend_failure(cls, message: str) -> "AuthError":
        return cls(AuthErrorKind.BACKEND_FAILURE, message)


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(GatewayException, ValueError):
    """Raised when the gateway is wired with an inconsistent configuration."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            status_code=500,
            suggestion="Check the route group declarations and environment settings",
            details=details,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def gateway_exception_handler(
    request: Request,
    exc: GatewayException
) -> JSONResponse:
    """
    Convert GatewayException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


async def unexpected_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Never leak internal detail for unexpected failures."""
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )
