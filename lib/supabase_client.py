# =============================================================================
# lib/supabase_client.py - Supabase Client Factory
# =============================================================================
# Builds Supabase clients for the gateway:
# - scoped(credential): anon key + the caller's Authorization header, so every
#   query runs with the caller's privileges and row level security applies.
#   One client per request; handed to route handlers via RequestContext.
# - admin(): service_role key, no session persistence. Bypasses RLS, so it
#   is only used by internal operations and never reaches route handlers.
#
# Usage:
#   factory = SupabaseClientFactory.from_settings(settings)
#   client = factory.scoped(credential)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from supabase import Client, create_client
from supabase.client import ClientOptions

from app.config import Settings
from core.models.auth import Credential

# Set up logging for this module
logger = logging.getLogger(__name__)


class SupabaseClientError(Exception):
    """
    Error while creating a Supabase client.

    Provides actionable error messages:
    "Errors should tell HOW to fix, not just WHAT failed."
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


class SupabaseClientFactory:
    """
    Creates caller-scoped and administrative Supabase clients.

    The admin client is created lazily and reused; scoped clients are
    created per request and never cached (they carry a user's token).
    """

    def __init__(self, url: str, anon_key: str, service_key: str):
        self.url = url
        self.anon_key = anon_key
        self.service_key = service_key
        self._admin: Client | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> SupabaseClientFactory:
        return cls(
            url=settings.SUPABASE_URL,
            anon_key=settings.SUPABASE_ANON_KEY,
            service_key=settings.SUPABASE_SERVICE_KEY,
        )

    def __call__(self, credential: Credential) -> Client:
        return self.scoped(credential)

    def scoped(self, credential: Credential) -> Client:
        """
        Create a client bound to the caller's credential.

        Args:
            credential: The caller's bearer credential (forwarded verbatim)

        Returns:
            Client: Supabase client acting with the caller's privileges

        Raises:
            SupabaseClientError: If client creation fails
        """
        try:
            return create_client(
                self.url,
                self.anon_key,
                options=ClientOptions(
                    headers={"Authorization": credential.raw},
                    auto_refresh_token=False,
                    persist_session=False,
                ),
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to create scoped Supabase client: {e}",
                code="SCOPED_CLIENT_INIT_FAILED",
                suggestion="Check SUPABASE_URL and SUPABASE_ANON_KEY in your .env file",
            ) from e

    def admin(self) -> Client:
        """
        Get or create the service_role client.

        Uses the service_role key which bypasses Row Level Security (RLS).
        Never pass this client to code handling untrusted input.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if self._admin is None:
            try:
                self._admin = create_client(
                    self.url,
                    self.service_key,
                    options=ClientOptions(
                        auto_refresh_token=False,
                        persist_session=False,
                    ),
                )
                logger.info("Supabase admin client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase admin client: {e}",
                    code="ADMIN_CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file",
                ) from e
        return self._admin
