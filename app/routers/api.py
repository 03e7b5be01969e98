# =============================================================================
# app/routers/api.py - Edge Function Endpoint
# =============================================================================
# The "api" edge function: authenticated POST with a JSON body.
# Only POST (plus the OPTIONS preflight) is exposed on this group.
# =============================================================================

import json
import logging

from fastapi.responses import JSONResponse, PlainTextResponse

from app.pipeline import RequestContext, RouteGroup

logger = logging.getLogger(__name__)

router = RouteGroup("/functions/v1/api", allowed_methods=["POST", "OPTIONS"])


@router.route("/", methods=["POST"])
async def invoke(context: RequestContext):
    """
    Accept a JSON payload on behalf of the authenticated caller.

    Returns the caller id with the parsed payload; an empty body is
    treated as null.
    """
    body = await context.request.body()

    payload = None
    if body:
        try:
            payload = json.loads(body)
        except ValueError:
            return PlainTextResponse("Invalid JSON body", status_code=400)

    logger.debug(f"Function invoked by user: {context.principal.id}")
    return JSONResponse({
        "user_id": context.principal.id,
        "payload": payload,
    })
