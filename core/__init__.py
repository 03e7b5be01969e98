# =============================================================================
# core/ - Gateway Logic Package
# =============================================================================
# This package contains the framework-light building blocks:
# - models/: Pydantic schemas (credential, principal, CORS decision)
# - services/: origin matching, CORS negotiation, session verification
#
# Code in this package should NOT import from FastAPI routers or the
# pipeline. This keeps the logic testable and reusable.
# =============================================================================
