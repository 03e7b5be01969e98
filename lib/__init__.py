# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Supabase client factory (caller-scoped and admin)
# =============================================================================

from lib.supabase_client import SupabaseClientError, SupabaseClientFactory

__all__ = [
    "SupabaseClientError",
    "SupabaseClientFactory",
]
