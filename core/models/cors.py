# =============================================================================
# core/models/cors.py - CORS Models
# =============================================================================
# Constants and the decision model produced by the CORS policy.
# =============================================================================

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

HTTPMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

DEFAULT_ALLOWED_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")

# Headers browsers may send on cross-origin calls to the gateway
ALLOWED_REQUEST_HEADERS = "authorization, x-client-info, apikey, content-type"


class CorsDecision(BaseModel):
    """
    Result of evaluating one request against the CORS policy.

    headers: response headers to attach to whatever response is sent
    is_preflight: True for OPTIONS; the pipeline answers 200 immediately
    origin_allowed: whether the request Origin matched a configured pattern
    origin: the request Origin header (None when absent)
    """
    headers: dict[str, str]
    is_preflight: bool
    origin_allowed: bool
    origin: Optional[str] = None

    model_config = ConfigDict(frozen=True)
