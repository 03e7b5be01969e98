# =============================================================================
# core/services/ - Gateway Building Blocks
# =============================================================================
# Framework-agnostic logic used by the request pipeline:
# - origin_matcher.py: allowed-origin pattern compilation and matching
# - cors_policy.py: CORS header negotiation
# - identity_service.py: session verification against Supabase Auth
# =============================================================================

from core.services.cors_policy import CorsPolicy
from core.services.identity_service import (
    IdentityService,
    JwtSessionVerifier,
    SessionVerifier,
)
from core.services.origin_matcher import OriginMatcher

__all__ = [
    "CorsPolicy",
    "IdentityService",
    "JwtSessionVerifier",
    "OriginMatcher",
    "SessionVerifier",
]
