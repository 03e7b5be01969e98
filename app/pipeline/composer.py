# =============================================================================
# app/pipeline/composer.py - Pipeline Composer
# =============================================================================
# Chains the stages and registers route groups on the FastAPI app.
#
#   request -> guarded(cors) -> guarded(auth) -> guarded(handler) -> response
#
# Every request ends in exactly one response: preflight, origin rejection,
# auth rejection, handler response, or the generic 500.
#
# Usage:
#   router = RouteGroup("/functions/v1/api", allowed_methods=["POST", "OPTIONS"])
#
#   @router.route("", methods=["POST"])
#   async def invoke(context: RequestContext) -> Response:
#       ...
#
#   gateway = Gateway(settings, verifier, client_factory)
#   gateway.include(app, router)
# =============================================================================

import logging
from collections.abc import Callable, Sequence

from fastapi import FastAPI
from starlette.responses import Response
from starlette.requests import Request
from starlette.types import Receive, Scope, Send

from app.auth.gate import AuthGate
from app.config import Settings
from app.exceptions import ConfigurationError
from app.pipeline.context import RequestContext, Terminate
from app.pipeline.stages import (
    AuthStage,
    ClientFactory,
    CorsStage,
    HandlerStage,
    RouteHandler,
    Stage,
    guarded,
    internal_error_response,
)
from core.models.cors import DEFAULT_ALLOWED_METHODS
from core.services.cors_policy import CorsPolicy, normalize_methods
from core.services.identity_service import SessionVerifier
from core.services.origin_matcher import OriginMatcher

logger = logging.getLogger(__name__)


# =============================================================================
# Dispatcher
# =============================================================================

class Pipeline:
    """Ordered list of stages run by a single dispatch loop."""

    def __init__(self, stages: Sequence[Stage]):
        self.stages = tuple(stages)

    async def dispatch(self, context: RequestContext) -> None:
        outcome = None
        for stage in self.stages:
            outcome = await stage(context)
            if isinstance(outcome, Terminate):
                break

        if not isinstance(outcome, Terminate):
            logger.error(f"Pipeline finished without a response ({context.method} {context.path})")
            outcome = Terminate(internal_error_response())

        if outcome.response is not None and not context.response_started:
            await self._send(context, outcome.response)

    async def _send(self, context: RequestContext, response: Response) -> None:
        try:
            await context.respond(response)
            return
        except Exception:
            logger.exception(f"Failed to send response ({context.method} {context.path})")

        if context.response_started:
            return
        try:
            await context.respond(internal_error_response())
        except Exception:
            logger.exception(f"Failed to send fallback 500 ({context.method} {context.path})")


class PipelineEndpoint:
    """
    Raw ASGI endpoint for one route group.

    Starlette treats non-function endpoints as ASGI apps, so the pipeline
    sees every method (including OPTIONS) before any framework handling.
    """

    def __init__(self, pipeline: Pipeline):
        self.pipeline = pipeline

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        context = RequestContext(request=Request(scope, receive), send=send)
        await self.pipeline.dispatch(context)


# =============================================================================
# Route Groups
# =============================================================================

class RouteGroup:
    """
    A set of routes sharing a prefix and an AllowedMethodSet.

    Handlers receive the RequestContext and return a Response (or None if
    they already responded through `context.respond`).
    """

    def __init__(
        self,
        prefix: str = "",
        allowed_methods: Sequence[str] = DEFAULT_ALLOWED_METHODS,
    ):
        self.prefix = prefix.rstrip("/")
        self.allowed_methods = normalize_methods(allowed_methods)
        self.routes: dict[str, dict[str, RouteHandler]] = {}

    def full_path(self, path: str) -> str:
        path = path.strip().strip("/")
        if not path:
            return self.prefix or "/"
        return f"{self.prefix}/{path}"

    def mount_paths(self) -> list[str]:
        """Starlette paths that send every request under the prefix to the group."""
        if not self.prefix:
            return ["/{path:path}"]
        return [self.prefix, f"{self.prefix}/{{path:path}}"]

    def route(
        self,
        path: str,
        methods: Sequence[str] = ("GET",),
    ) -> Callable[[RouteHandler], RouteHandler]:
        """Register a handler for `path` under this group's prefix."""
        def decorator(handler: RouteHandler) -> RouteHandler:
            self.add_route(path, handler, methods)
            return handler
        return decorator

    def add_route(self, path: str, handler: RouteHandler, methods: Sequence[str]) -> None:
        wanted = normalize_methods(methods)
        outside = [m for m in wanted if m not in self.allowed_methods or m == "OPTIONS"]
        if outside:
            raise ConfigurationError(
                f"Methods {outside} are not routable in group '{self.prefix or '/'}'",
                details={"allowed_methods": list(self.allowed_methods)},
            )

        handlers = self.routes.setdefault(self.full_path(path), {})
        for method in wanted:
            if method in handlers:
                raise ConfigurationError(
                    f"Duplicate handler for {method} {self.full_path(path)}"
                )
            handlers[method] = handler


# =============================================================================
# Gateway
# =============================================================================

class Gateway:
    """
    Builds one pipeline per route group and registers it on the app.

    Origin patterns are compiled once here; the resulting matcher, policy and
    gate are shared read-only by every route.
    """

    def __init__(
        self,
        settings: Settings,
        verifier: SessionVerifier,
        client_factory: ClientFactory,
    ):
        self.settings = settings
        self.matcher = OriginMatcher.compile(settings.allowed_origins_list)
        self.policy = CorsPolicy(self.matcher, fallback_origin=settings.canonical_origin)
        self.gate = AuthGate(verifier)
        self.client_factory = client_factory

    def build_pipeline(self, group: RouteGroup) -> Pipeline:
        return Pipeline([
            guarded(CorsStage(
                self.policy,
                group.allowed_methods,
                enforce_origin=self.settings.CORS_ENFORCE_ORIGIN,
            )),
            guarded(AuthStage(self.gate, self.client_factory)),
            guarded(HandlerStage(group.routes)),
        ])

    def include(self, app: FastAPI, group: RouteGroup) -> None:
        """
        Register one pipeline for the whole group prefix.

        Every request under the prefix, registered path or not, runs CORS and
        auth first; the handler stage answers 404 for unknown paths.
        """
        endpoint = PipelineEndpoint(self.build_pipeline(group))
        for path in group.mount_paths():
            app.add_route(path, endpoint, include_in_schema=False)
        logger.info(
            f"Registered pipeline group {group.prefix or '/'} "
            f"({len(group.routes)} routes) [{', '.join(group.allowed_methods)}]"
        )
