"""
FastAPI router for the shopdesk API.

Versioned API under ``/api/v1``; privileged functions under ``/functions/v1``.
"""

from fastapi import APIRouter

from shopdesk.api.v1 import functions_router
from shopdesk.api.v1 import router as v1_router

router = APIRouter()
router.include_router(v1_router, prefix="/api/v1")
router.include_router(functions_router, prefix="/functions/v1")

__all__ = ["router"]
