# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the EdgeGate API:
# - test_origin_matcher.py / test_cors_policy.py: CORS negotiation
# - test_auth_gate.py / test_identity_service.py: session authentication
# - test_pipeline.py: stages, failure guard, dispatcher, route groups
# - test_gateway.py: end-to-end request scenarios through create_app()
# - test_routes.py: auth, function and health routes
# - test_config.py / test_supabase_client.py: settings and client factory
#
# Run tests with: pytest
# =============================================================================
