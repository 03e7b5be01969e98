# =============================================================================
# core/services/cors_policy.py - CORS Header Negotiation
# =============================================================================
# Turns (method, Origin, allowed methods) into the exact CORS response headers.
#
# A disallowed Origin is never echoed back: the backend's own canonical
# origin is returned instead, which keeps the header well-formed while the
# browser refuses the credentialed read.
# =============================================================================

from collections.abc import Sequence

from core.models.cors import ALLOWED_REQUEST_HEADERS, DEFAULT_ALLOWED_METHODS, CorsDecision
from core.services.origin_matcher import OriginMatcher


def normalize_methods(methods: Sequence[str]) -> tuple[str, ...]:
    """Upper-case method tokens, keeping first-seen order and dropping repeats."""
    seen: dict[str, None] = {}
    for method in methods:
        token = method.strip().upper()
        if token:
            seen.setdefault(token, None)
    return tuple(seen)


class CorsPolicy:
    """
    Evaluates requests against an OriginMatcher.

    Args:
        matcher: Compiled allowed-origin patterns
        fallback_origin: Value sent as Allow-Origin when the request Origin
            is not reflected (normally the Supabase project URL)
    """

    def __init__(self, matcher: OriginMatcher, fallback_origin: str):
        self.matcher = matcher
        self.fallback_origin = fallback_origin

    def evaluate(
        self,
        method: str,
        origin: str | None,
        allowed_methods: Sequence[str] = DEFAULT_ALLOWED_METHODS,
    ) -> CorsDecision:
        """
        Compute the CORS headers for one request.

        Returns:
            CorsDecision with the headers to attach and the preflight flag
        """
        origin = origin or None
        allowed = self.matcher.is_allowed(origin)

        headers = {
            "Access-Control-Allow-Origin": origin if (allowed and origin) else self.fallback_origin,
            "Access-Control-Allow-Headers": ALLOWED_REQUEST_HEADERS,
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Methods": ", ".join(normalize_methods(allowed_methods)),
            "Vary": "Origin",
        }

        return CorsDecision(
            headers=headers,
            is_preflight=method.upper() == "OPTIONS",
            origin_allowed=allowed,
            origin=origin,
        )
