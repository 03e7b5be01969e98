# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# Pipeline routes for authentication-related operations.
#
# Note: Actual signup/login is handled by Supabase Auth client-side.
# These routes are for getting user info after authentication. The pipeline
# guarantees context.principal is set before any handler here runs.
# =============================================================================

import logging

from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.auth.models import UserResponse, VerifyResponse
from app.pipeline import RequestContext, RouteGroup

logger = logging.getLogger(__name__)

router = RouteGroup("/api/v1/auth", allowed_methods=["GET", "OPTIONS"])


def _fetch_profile(client, user_id: str) -> dict | None:
    response = (
        client.table("users")
        .select("*")
        .eq("id", user_id)
        .maybe_single()
        .execute()
    )
    return response.data if response is not None else None


@router.route("/me", methods=["GET"])
async def get_current_user_info(context: RequestContext) -> JSONResponse:
    """
    Get the current authenticated user's profile.

    The lookup uses the caller-scoped client, so row level security decides
    what is visible.

    Returns:
        UserResponse: User profile with id, email, display_name, etc.
    """
    principal = context.principal

    try:
        row = await run_in_threadpool(_fetch_profile, context.client, principal.id)
        if row:
            return JSONResponse(UserResponse(**row).model_dump(mode="json"))
    except Exception as e:
        logger.warning(f"Could not fetch user profile: {e}")

    # User exists in auth but not yet in public.users
    # (might happen if trigger hasn't run yet)
    return JSONResponse(
        UserResponse(id=principal.id, email=principal.email).model_dump(mode="json")
    )


@router.route("/verify", methods=["GET"])
async def verify_token(context: RequestContext) -> JSONResponse:
    """
    Verify that the current token is valid.

    Useful for checking if a stored token is still valid.
    """
    principal = context.principal
    return JSONResponse(
        VerifyResponse(
            user_id=principal.id,
            email=principal.email,
            role=principal.role,
        ).model_dump(mode="json")
    )
