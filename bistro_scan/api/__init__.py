"""
==============================================================================
API Package
==============================================================================

REST routers, mounted under /api/v1 by router.build_api_router().

==============================================================================
"""
