# =============================================================================
# app/pipeline/context.py - Per-Request Context and Stage Outcomes
# =============================================================================
# RequestContext is created once per request by the pipeline endpoint and
# passed explicitly to every stage and to the route handler. It is never
# shared between requests.
#
# Stages return an Outcome:
#   Continue(context)   -> run the next stage
#   Terminate(response) -> stop and send `response`
#   Terminate(None)     -> stop; a response was already started
# =============================================================================

from dataclasses import dataclass, field
from typing import Any, Union

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Message, Send

from core.models.auth import Credential, Principal


@dataclass
class RequestContext:
    """
    Everything downstream stages know about the current request.

    Attributes:
        request: The inbound Starlette request
        send: ASGI send callable for this request
        response_headers: Headers merged into whatever response is sent
            (the CORS stage fills these)
        credential: Caller's bearer credential, set by the auth stage
        principal: Authenticated caller, set by the auth stage
        client: Supabase client scoped to the caller's credential
        response_started: True once the response start message went out
    """
    request: Request
    send: Send
    response_headers: dict[str, str] = field(default_factory=dict)
    credential: Credential | None = None
    principal: Principal | None = None
    client: Any = None
    response_started: bool = False

    @property
    def method(self) -> str:
        return self.request.method.upper()

    @property
    def path(self) -> str:
        return self.request.url.path

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    async def respond(self, response: Response) -> None:
        """
        Send `response` on this request with the accumulated headers merged in.

        Handlers that stream may call this themselves and return None.
        """
        for name, value in self.response_headers.items():
            response.headers[name] = value

        async def tracking_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                self.response_started = True
            await self.send(message)

        await response(self.request.scope, self.request.receive, tracking_send)


def bind_context(
    context: RequestContext,
    credential: Credential,
    principal: Principal,
    client: Any,
) -> RequestContext:
    """Attach the authenticated caller and their scoped client to the context."""
    context.credential = credential
    context.principal = principal
    context.client = client
    return context


@dataclass(frozen=True)
class Continue:
    context: RequestContext


@dataclass(frozen=True)
class Terminate:
    response: Response | None


Outcome = Union[Continue, Terminate]
