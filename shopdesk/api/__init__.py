"""
API Package

HTTP surface of shopdesk.
"""

from .factory import create_api
from .router import router

__all__ = ["router", "create_api"]
