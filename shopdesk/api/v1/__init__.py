"""
API Version 1 Package

Version 1 of the shopdesk API endpoints and the privileged functions.
"""

from fastapi import APIRouter

from .endpoints import (
    functions_router,
    health_router,
    notices_router,
    preferences_router,
    settings_router,
    setup_router,
)

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(settings_router)
router.include_router(preferences_router)
router.include_router(setup_router)
router.include_router(notices_router)

__all__ = ["functions_router", "router"]
