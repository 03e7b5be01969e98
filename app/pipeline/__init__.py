# =============================================================================
# app/pipeline/ - Edge Request Pipeline
# =============================================================================
# The middleware chain every protected route runs through:
# - context.py: RequestContext and the Continue/Terminate outcomes
# - stages.py: CORS, auth and handler stages plus the failure guard
# - composer.py: dispatcher, route groups and FastAPI registration
# =============================================================================

from app.pipeline.composer import Gateway, Pipeline, PipelineEndpoint, RouteGroup
from app.pipeline.context import Continue, Outcome, RequestContext, Terminate, bind_context
from app.pipeline.stages import AuthStage, CorsStage, HandlerStage, guarded

__all__ = [
    "AuthStage",
    "Continue",
    "CorsStage",
    "Gateway",
    "HandlerStage",
    "Outcome",
    "Pipeline",
    "PipelineEndpoint",
    "RequestContext",
    "RouteGroup",
    "Terminate",
    "bind_context",
    "guarded",
]
