# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the EdgeGate API.
# It builds the FastAPI application, wires the request pipeline in front of
# every protected route group, and registers the plain health routes.
#
# Usage:
#   uvicorn --factory app.main:create_app --reload
#   python -m app.main              # binds API_HOST:PORT (default 0.0.0.0:3000)
# =============================================================================

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from app import __version__
from app.auth import routes as auth_routes
from app.config import Settings, get_settings
from app.exceptions import (
    GatewayException,
    gateway_exception_handler,
    unexpected_exception_handler,
)
from app.pipeline import Gateway
from app.pipeline.stages import ClientFactory
from app.routers import api, health
from core.services.identity_service import IdentityService, JwtSessionVerifier, SessionVerifier
from lib.supabase_client import SupabaseClientFactory

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_verifier(settings: Settings) -> SessionVerifier:
    """Local JWT verification when a secret is configured, else ask Supabase Auth."""
    if settings.SUPABASE_JWT_SECRET:
        return JwtSessionVerifier(settings.SUPABASE_JWT_SECRET)
    return IdentityService(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        timeout=settings.AUTH_TIMEOUT_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Logs the effective configuration on startup.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting EdgeGate API in {settings.ENVIRONMENT} mode")
    logger.info(f"Allowed origins: {settings.allowed_origins_list}")
    logger.info(f"Identity verifier: {type(app.state.verifier).__name__}")

    yield

    logger.info("Shutting down EdgeGate API")


def create_app(
    settings: Settings | None = None,
    *,
    verifier: SessionVerifier | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Frozen settings; read from the environment when omitted
        verifier: Identity backend collaborator (defaults per settings)
        client_factory: Callable turning a Credential into a scoped client

    Returns:
        FastAPI: Application with pipeline routes and health routes
    """
    settings = settings or get_settings()
    configure_logging(settings.DEBUG)

    verifier = verifier or build_verifier(settings)
    client_factory = client_factory or SupabaseClientFactory.from_settings(settings)

    app = FastAPI(
        title="EdgeGate API",
        description="HTTP gateway in front of a Supabase project: CORS, "
                    "session authentication and caller-scoped clients.",
        version=__version__,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Health",
                "description": "API health and readiness checks",
            },
        ],
    )

    app.state.settings = settings
    app.state.verifier = verifier
    app.state.client_factory = client_factory

    # =========================================================================
    # Exception Handlers (plain FastAPI routes)
    # =========================================================================

    app.add_exception_handler(GatewayException, gateway_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)

    # =========================================================================
    # Routers
    # =========================================================================

    # Health check endpoints (no pipeline)
    app.include_router(
        health.router,
        prefix="/api/v1",
        tags=["Health"]
    )

    # Pipeline route groups
    gateway = Gateway(settings, verifier, client_factory)
    gateway.include(app, auth_routes.router)
    gateway.include(app, api.router)
    app.state.gateway = gateway

    @app.get("/", tags=["Root"])
    async def root():
        """
        Root endpoint - returns API info.
        """
        return {
            "name": "EdgeGate API",
            "version": __version__,
            "health": "/api/v1/health",
        }

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    run()
