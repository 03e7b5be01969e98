# =============================================================================
# app/pipeline/stages.py - Pipeline Stages
# =============================================================================
# Each stage is an async callable `(context) -> Outcome`:
# - CorsStage: computes CORS headers, answers preflights, rejects origins
# - AuthStage: Auth Gate + context binding; answers 401 itself
# - HandlerStage: resolves the route by path, then the handler by method
#
# guarded() wraps any stage so an escaping exception becomes a generic 500
# (or nothing, if a response already started) instead of a hung request.
# =============================================================================

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol

from starlette.responses import PlainTextResponse, Response

from app.auth.gate import AuthGate, log_auth_error
from app.exceptions import AuthError
from app.pipeline.context import Continue, Outcome, RequestContext, Terminate, bind_context
from core.models.auth import Credential
from core.services.cors_policy import CorsPolicy

logger = logging.getLogger(__name__)

INTERNAL_ERROR_BODY = "Internal Server Error"
UNAUTHORIZED_BODY = "Unauthorized"
FORBIDDEN_BODY = "Forbidden"
NOT_FOUND_BODY = "Not Found"
METHOD_NOT_ALLOWED_BODY = "Method Not Allowed"

RouteHandler = Callable[[RequestContext], Awaitable[Response | None]]
ClientFactory = Callable[[Credential], Any]


class Stage(Protocol):
    name: str

    async def __call__(self, context: RequestContext) -> Outcome:
        ...


def internal_error_response() -> Response:
    return PlainTextResponse(INTERNAL_ERROR_BODY, status_code=500)


# =============================================================================
# Failure Wrapper
# =============================================================================

class GuardedStage:
    """
    Runs a stage and converts any escaping exception into a terminal outcome.

    Never re-raises. If the response already started, the failure is only
    logged: a second response must not be written.
    """

    def __init__(self, stage: Stage):
        self.stage = stage
        self.name = getattr(stage, "name", type(stage).__name__)

    async def __call__(self, context: RequestContext) -> Outcome:
        try:
            return await self.stage(context)
        except Exception:
            logger.exception(
                f"Unhandled failure in stage '{self.name}' "
                f"({context.method} {context.path})"
            )
            if context.response_started:
                return Terminate(None)
            return Terminate(internal_error_response())


def guarded(stage: Stage) -> GuardedStage:
    return GuardedStage(stage)


# =============================================================================
# CORS
# =============================================================================

class CorsStage:
    """
    Attaches CORS headers and short-circuits preflight requests.

    With `enforce_origin`, a non-preflight request carrying an Origin that
    does not match any pattern is rejected with 403. Requests without an
    Origin header are not browser cross-origin calls and pass through.
    """

    name = "cors"

    def __init__(
        self,
        policy: CorsPolicy,
        allowed_methods: Sequence[str],
        enforce_origin: bool = True,
    ):
        self.policy = policy
        self.allowed_methods = tuple(allowed_methods)
        self.enforce_origin = enforce_origin

    async def __call__(self, context: RequestContext) -> Outcome:
        decision = self.policy.evaluate(
            context.method,
            context.request.headers.get("origin"),
            self.allowed_methods,
        )
        context.response_headers.update(decision.headers)

        if decision.is_preflight:
            return Terminate(Response(status_code=200))

        if self.enforce_origin and decision.origin and not decision.origin_allowed:
            logger.warning(
                f"Rejected request from disallowed origin {decision.origin!r} "
                f"({context.method} {context.path})"
            )
            return Terminate(PlainTextResponse(FORBIDDEN_BODY, status_code=403))

        return Continue(context)


# =============================================================================
# Auth Gate + Context Binder
# =============================================================================

class AuthStage:
    """
    Authenticates the caller and binds principal + scoped client.

    On AuthError the stage logs, answers 401 itself and halts the pipeline.
    """

    name = "auth"

    def __init__(self, gate: AuthGate, client_factory: ClientFactory):
        self.gate = gate
        self.client_factory = client_factory

    async def __call__(self, context: RequestContext) -> Outcome:
        try:
            credential, principal = await self.gate.authenticate(
                context.request.headers.get("authorization")
            )
        except AuthError as exc:
            log_auth_error(exc, context.path)
            return Terminate(
                PlainTextResponse(
                    UNAUTHORIZED_BODY,
                    status_code=401,
                    headers={"WWW-Authenticate": "Bearer"},
                )
            )

        bind_context(context, credential, principal, self.client_factory(credential))
        return Continue(context)


# =============================================================================
# Route Handler
# =============================================================================

def route_key(path: str) -> str:
    """Normalize a request or route path; a trailing slash is not significant."""
    return path.rstrip("/") or "/"


class HandlerStage:
    """
    Looks up the route for the request path and calls the handler
    registered for the request method.

    Runs after CORS and auth, so unknown paths under a group's prefix are
    only revealed (404) to authenticated callers.
    """

    name = "handler"

    def __init__(self, routes: Mapping[str, Mapping[str, RouteHandler]]):
        self.routes = {route_key(path): dict(handlers) for path, handlers in routes.items()}

    async def __call__(self, context: RequestContext) -> Outcome:
        if not context.is_authenticated:
            raise RuntimeError("Route handler reached without an authenticated principal")

        handlers = self.routes.get(route_key(context.path))
        if handlers is None:
            return Terminate(PlainTextResponse(NOT_FOUND_BODY, status_code=404))

        handler = handlers.get(context.method)
        if handler is None:
            allow = ", ".join([*handlers, "OPTIONS"])
            return Terminate(
                PlainTextResponse(
                    METHOD_NOT_ALLOWED_BODY,
                    status_code=405,
                    headers={"Allow": allow},
                )
            )

        response = await handler(context)
        if response is None and not context.response_started:
            raise RuntimeError(f"Handler for {context.method} {context.path} returned no response")
        return Terminate(response)
