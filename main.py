"""
shopdesk - Main Entry Point

Runs the API server, a standalone courier status watcher, or a single
courier status refresh pass.
"""

import argparse
import asyncio
import os
import signal
import sys

from fastapi import FastAPI

from shopdesk.core.config import settings


def create_app() -> FastAPI:
    """
    Factory function to create FastAPI application.

    Called by uvicorn in factory mode so the app is not built at import time.

    Returns:
        FastAPI: Configured application instance
    """
    from shopdesk.api.factory import create_api
    from shopdesk.core.logger import setup_logging

    setup_logging()

    return create_api(
        title=settings.api__title,
        description=settings.api__description,
        version=settings.api__version,
        docs_url=settings.api__docs_url,
        redoc_url=settings.api__redoc_url,
    )


async def run_watch_mode() -> None:
    """Run the courier status bridge until SIGINT/SIGTERM."""
    from shopdesk.core.logfire_config import initialize_logfire
    from shopdesk.core.logger import setup_logging
    from shopdesk.services.courier_realtime import CourierStatusBridge
    from shopdesk.services.notice_service import get_notice_service
    from shopdesk.stores.change_feed import get_change_feed
    from shopdesk.stores.query_cache import get_query_cache
    from shopdesk.stores.redis_client import close_redis_client

    setup_logging()
    initialize_logfire(app=None)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    bridge = CourierStatusBridge(
        get_change_feed(), get_query_cache(), get_notice_service()
    )
    bridge.start()
    print("👀 Watching courier status changes (Ctrl+C to stop)")
    try:
        await stop_event.wait()
    finally:
        await bridge.stop()
        await close_redis_client()


async def run_refresh_mode() -> int:
    """Run one courier status refresh pass and print its summary."""
    from shopdesk.core.exceptions import ApplicationException
    from shopdesk.core.logfire_config import initialize_logfire
    from shopdesk.core.logger import setup_logging
    from shopdesk.services.courier_service import get_courier_service
    from shopdesk.stores.redis_client import close_redis_client

    setup_logging()
    initialize_logfire(app=None)

    try:
        summary = await get_courier_service().refresh_statuses()
    except ApplicationException as e:
        print(f"❌ Status refresh failed: {e}")
        return 1
    finally:
        await close_redis_client()

    print(
        f"✅ Checked {summary['checked']} sale(s): "
        f"{summary['updated']} updated, {summary['failed']} failed"
    )
    return 0


def main() -> None:
    """
    Main entry point with CLI argument parsing.
    """
    parser = argparse.ArgumentParser(
        description="shopdesk - back office service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --mode api          # Run as FastAPI server (default)
  python main.py --mode api --host 127.0.0.1 --port 3000  # Custom host/port
  python main.py --mode watch        # Courier status notices without the API
  python main.py --mode refresh      # One courier status refresh pass
        """,
    )

    parser.add_argument(
        "--mode",
        choices=["api", "watch", "refresh"],
        default="api",
        help="Run mode (default: api)",
    )

    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the API server (default: 0.0.0.0)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8080")),
        help="Port to bind the API server (default: 8080)",
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (API mode only)",
    )

    args = parser.parse_args()

    if args.mode == "watch":
        try:
            asyncio.run(run_watch_mode())
        except KeyboardInterrupt:
            print("\n👋 Goodbye!")
        return

    if args.mode == "refresh":
        sys.exit(asyncio.run(run_refresh_mode()))

    print("🚀 Starting shopdesk API Server...")
    print(f"📍 Server will run on {args.host}:{args.port}")
    print(f"🌍 Environment: {settings.environment}")
    print(f"🐛 Debug mode: {settings.debug}")
    print(f"📚 API docs: http://{args.host}:{args.port}{settings.api__docs_url}")
    print()

    import uvicorn

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload or settings.debug,
        log_level=str(settings.log_level).lower(),
    )


if __name__ == "__main__":
    main()
