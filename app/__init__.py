# =============================================================================
# app/ - FastAPI Gateway Package
# =============================================================================
# This package contains the HTTP gateway:
# - main.py: App factory, logging, exception handlers, route registration
# - config.py: Environment variable loading and settings
# - pipeline/: CORS -> auth -> handler request pipeline
# - auth/: Auth gate and the auth route group
# - routers/: Health endpoints and edge function route groups
#
# The app layer handles HTTP concerns and delegates matching and
# verification to the core/ package.
# =============================================================================

__version__ = "1.0.0"
