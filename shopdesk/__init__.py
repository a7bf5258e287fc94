"""
shopdesk Package

Back office service for a small shop: settings persistence with query cache
synchronization, courier status notifications, and the privileged webhook
and admin functions, built with FastAPI, SQLAlchemy and Redis.
"""

__version__ = "1.0.0"

__all__ = [
    "api",
    "core",
    "models",
    "services",
    "stores",
]
