# =============================================================================
# app/auth/models.py - Authentication Response Models
# =============================================================================
# Pydantic models returned by the auth route group.
# =============================================================================

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class UserResponse(BaseModel):
    """
    Full user response for API endpoints.

    Includes profile data from the public.users table when the caller's
    row is visible to them.
    """
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VerifyResponse(BaseModel):
    """Confirmation that the presented token resolved to a user."""
    valid: bool = True
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None
