"""
API Factory

Centralized API setup with middleware, CORS, monitoring, and the lifespan
that owns the courier status bridge and the periodic status refresh.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from shopdesk.api.errors import register_exception_handlers
from shopdesk.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from shopdesk.api.router import router
from shopdesk.core.config import settings
from shopdesk.core.logfire_config import initialize_logfire
from shopdesk.core.logger import get_logger
from shopdesk.services.courier_realtime import CourierStatusBridge
from shopdesk.services.courier_service import (
    get_courier_service,
    run_status_refresh_loop,
)
from shopdesk.services.notice_service import get_notice_service
from shopdesk.stores.auth_client import get_auth_client
from shopdesk.stores.change_feed import get_change_feed
from shopdesk.stores.database import dispose_engine
from shopdesk.stores.query_cache import get_query_cache
from shopdesk.stores.redis_client import close_redis_client

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start background workers on startup; tear them down and release pools on shutdown."""
    bridge: Optional[CourierStatusBridge] = None
    refresh_task: Optional[asyncio.Task[None]] = None

    if settings.realtime__courier_bridge_enabled:
        bridge = CourierStatusBridge(
            get_change_feed(), get_query_cache(), get_notice_service()
        )
        bridge.start()
        logger.info("Courier status bridge started")

    if settings.courier__status_refresh_enabled:
        refresh_task = asyncio.create_task(
            run_status_refresh_loop(get_courier_service()),
            name="courier-status-refresh",
        )

    app.state.courier_bridge = bridge
    try:
        yield
    finally:
        if refresh_task is not None:
            refresh_task.cancel()
            await asyncio.gather(refresh_task, return_exceptions=True)
        if bridge is not None:
            await bridge.stop()
        await get_auth_client().aclose()
        await close_redis_client()
        dispose_engine()
        logger.info("Shutdown complete")


def setup_cors(app: FastAPI) -> None:
    """
    Setup CORS middleware with configurable origins.

    Args:
        app: FastAPI application instance
    """
    cors_origins = settings.cors_allow_origins_list

    if cors_origins and cors_origins != [""]:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=settings.cors__allow_credentials,
            allow_methods=settings.cors_allow_methods_list,
            allow_headers=settings.cors_allow_headers_list,
        )
        logger.info("CORS middleware configured for origins: %s", cors_origins)
    else:
        logger.info("CORS middleware skipped (no origins configured)")


def setup_compression(app: FastAPI) -> None:
    # Only responses over 1KB are compressed
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    logger.info("GZip compression middleware configured")


def setup_logging_middleware(app: FastAPI) -> None:
    """
    Setup request logging and ID middleware.

    The request ID middleware is added last so it runs first and every
    request log line carries the id.
    """
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    logger.info("Request logging and ID middleware configured")


def setup_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    logger.info("Global exception handlers configured")


def setup_logfire_instrumentation(app: FastAPI) -> None:
    """
    Setup Logfire configuration and library instrumentation.

    Args:
        app: FastAPI application instance
    """
    results = initialize_logfire(app)

    if not results["configured"]:
        logger.debug("Logfire initialization skipped (disabled or no token)")
        return

    enabled_instruments = [
        name for name, enabled in results["instrumentation"].items() if enabled
    ]
    if enabled_instruments:
        logger.info(
            "Logfire instrumentation enabled for: %s", ", ".join(enabled_instruments)
        )
    else:
        logger.debug("No Logfire instrumentation enabled")


def setup_timing_header(app: FastAPI) -> None:
    """Add an X-Process-Time header to every response."""

    @app.middleware("http")
    async def timing_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = str(time.time() - start_time)
        return response


def create_api(
    title: str = "shopdesk API",
    description: str = "Back office API for shopdesk",
    version: str = "1.0.0",
    docs_url: str = "/docs",
    redoc_url: str = "/redoc",
    enable_cors: bool = True,
    enable_compression: bool = True,
    enable_timing: bool = True,
    enable_logfire: bool = True,
    mount_prefix: str = "",
) -> FastAPI:
    """
    Create and configure FastAPI application with all middleware.

    Args:
        title: API title
        description: API description
        version: API version
        docs_url: URL path for API documentation (Swagger UI)
        redoc_url: URL path for ReDoc documentation
        enable_cors: Whether to enable CORS middleware
        enable_compression: Whether to enable GZip compression
        enable_timing: Whether to add the X-Process-Time header
        enable_logfire: Whether to configure Logfire instrumentation
        mount_prefix: Prefix for mounting the API router

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        description=description,
        version=version,
        docs_url=docs_url,
        redoc_url=redoc_url,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Middleware runs in reverse order of registration
    if enable_timing:
        setup_timing_header(app)

    if enable_compression:
        setup_compression(app)

    if enable_cors:
        setup_cors(app)

    setup_logging_middleware(app)
    setup_exception_handlers(app)

    if enable_logfire:
        setup_logfire_instrumentation(app)

    app.include_router(router, prefix=mount_prefix)

    logger.info("API factory created: %s v%s", title, version)
    return app
