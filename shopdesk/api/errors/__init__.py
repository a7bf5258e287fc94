"""
API Error Handling

FastAPI-specific error handling and response schemas.
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shopdesk.core.exceptions import ApplicationException

from .exception_handlers import global_exception_handler


def register_exception_handlers(app: FastAPI) -> None:
    """Route every exception type through the global handler."""
    app.add_exception_handler(ApplicationException, global_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(StarletteHTTPException, global_exception_handler)
    app.add_exception_handler(RequestValidationError, global_exception_handler)


__all__ = ["global_exception_handler", "register_exception_handlers"]
