"""
Exception Handlers

Render every error raised under the API as the ``ErrorResponse`` envelope.
"""

import traceback

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shopdesk.api.schemas.error import ErrorDetail, ErrorResponse
from shopdesk.core.config import settings
from shopdesk.core.error_codes import APIErrorCode, ValidationErrorCode
from shopdesk.core.exceptions import ApplicationException
from shopdesk.core.logger import get_logger

logger = get_logger(__name__)


def _log_exception(request: Request, exc: Exception, status_code: int) -> None:
    msg = "%s %s failed: %s"
    args = (request.method, request.url.path, str(exc))

    if status_code >= 500:
        logger.error(msg, *args, exc_info=True)
    elif status_code >= 400:
        logger.warning(msg, *args)
    else:
        logger.info(msg, *args)


def _build_response(
    error: ErrorDetail, request: Request, status_code: int
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)

    payload = ErrorResponse(
        error=error,
        request_id=request_id,
        path=request.url.path,
        method=request.method,
    )

    headers = {}
    if request_id:
        headers["X-Request-ID"] = request_id

    return JSONResponse(
        status_code=status_code,
        content=payload.model_dump(mode="json"),
        headers=headers,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for all unhandled exceptions.

    Application exceptions keep their own status and code; FastAPI HTTP and
    validation errors are mapped onto the same envelope; anything else is a
    500 with debug details only when ``settings.debug`` is on.
    """
    if isinstance(exc, ApplicationException):
        status_code = exc.http_status
        _log_exception(request, exc, status_code)

        exc_dict = exc.to_dict()
        error = ErrorDetail(
            type=exc.__class__.__name__,
            message=exc_dict["message"],
            code=exc_dict["code"],
            details=exc_dict["details"],
        )
        return _build_response(error, request, status_code)

    if isinstance(exc, (HTTPException, StarletteHTTPException)):
        _log_exception(request, exc, exc.status_code)
        error = ErrorDetail(
            type="HTTPException",
            message=str(exc.detail),
            code=f"HTTP_{exc.status_code}",
        )
        return _build_response(error, request, exc.status_code)

    if isinstance(exc, RequestValidationError):
        _log_exception(request, exc, 422)
        error = ErrorDetail(
            type="ValidationError",
            message="Request validation failed",
            code=ValidationErrorCode.INVALID_INPUT.value,
            details={"validation_errors": exc.errors()},
        )
        return _build_response(error, request, 422)

    _log_exception(request, exc, 500)
    error = ErrorDetail(
        type="InternalServerError",
        message="An unexpected error occurred",
        code=APIErrorCode.INTERNAL_ERROR.value,
    )
    if settings.debug:
        error.debug = {
            "exception_type": exc.__class__.__name__,
            "exception_message": str(exc),
            "traceback": traceback.format_exc(),
        }

    return _build_response(error, request, 500)
