# =============================================================================
# app/routers/ - Route Modules
# =============================================================================
# - health.py: unauthenticated FastAPI health endpoints
# - api.py: the "api" edge function route group (pipeline)
# =============================================================================
