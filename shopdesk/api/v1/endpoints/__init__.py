"""
API Endpoints Package

FastAPI endpoint definitions for shopdesk.
"""

from .functions import router as functions_router
from .health import router as health_router
from .notices import router as notices_router
from .preferences import router as preferences_router
from .settings import router as settings_router
from .setup import router as setup_router

__all__ = [
    "functions_router",
    "health_router",
    "notices_router",
    "preferences_router",
    "settings_router",
    "setup_router",
]
