# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single, immutable Settings class with all configuration values.
#
# Usage:
#   from app.config import get_settings
#   settings = get_settings()
#   app = create_app(settings)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# Settings are built once at startup and handed to the components that need
# them (origin matcher, gateway, health checks). Nothing else reads os.environ.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Gateway settings loaded from environment variables.

    Uses pydantic-settings to:
    - Automatically load from .env file
    - Validate types and constraints
    - Provide sensible defaults for development

    The instance is frozen: build it once and pass it by reference.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,  # ... means required (no default)
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str | None = Field(
        default=None,
        description="Legacy HS256 JWT secret; when set, tokens are verified locally"
    )

    # -------------------------------------------------------------------------
    # CORS
    # -------------------------------------------------------------------------

    # Comma-separated origin patterns: exact origins, "*" or "https://*.example.com"
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Allowed CORS origin patterns (comma-separated)"
    )

    CORS_ENFORCE_ORIGIN: bool = Field(
        default=True,
        description="Reject non-preflight requests whose Origin is not allowed (403)"
    )

    # -------------------------------------------------------------------------
    # Identity Backend
    # -------------------------------------------------------------------------

    AUTH_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="Upper bound for a single session verification call"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    PORT: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        # Load from .env file in project root
        env_file=".env",
        env_file_encoding="utf-8",
        # Empty variables fall back to defaults (ALLOWED_ORIGINS="" -> "*")
        env_ignore_empty=True,
        # Case-sensitive environment variable names
        case_sensitive=True,
        # Built once, never mutated
        frozen=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def allowed_origins_list(self) -> list[str]:
        """
        Parse ALLOWED_ORIGINS string into a list of patterns.

        Handles comma-separated values, strips whitespace and drops empty items.
        Example: "https://app.example.com, https://*.preview.dev" ->
                 ["https://app.example.com", "https://*.preview.dev"]
        An empty result falls back to ["*"].
        """
        patterns = [p.strip() for p in self.ALLOWED_ORIGINS.split(",")]
        return [p for p in patterns if p] or ["*"]

    @property
    def canonical_origin(self) -> str:
        """The backend's own origin, used when a request Origin is not reflected."""
        return self.SUPABASE_URL.rstrip("/")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()
