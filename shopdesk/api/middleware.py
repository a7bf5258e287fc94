"""
FastAPI Middleware

Request ID propagation and request logging.
"""

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shopdesk.core.logger import get_logger, set_request_id

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every API request with its status and duration."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.time()
        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        logger.debug("Request: %s %s from %s", method, path, client_ip)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed: %s %s - %s (%.3fs)",
                method,
                path,
                str(e),
                time.time() - start_time,
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        if response.status_code >= 500:
            log = logger.error
        elif response.status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log("%s %s - %d (%.3fs)", method, path, response.status_code, duration)
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Read X-Request-ID from the request or generate one.

    The id is stored on ``request.state``, bound to the logging context so
    every record of the request carries it, and echoed in the response.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        set_request_id(request_id)

        try:
            response = await call_next(request)
        finally:
            set_request_id(None)

        response.headers["X-Request-ID"] = request_id
        return response
