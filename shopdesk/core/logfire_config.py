"""
Logfire Configuration Module

Logfire setup and library instrumentation for shopdesk.

Usage:
    from shopdesk.core.logfire_config import initialize_logfire

    results = initialize_logfire(app)  # idempotent; safe to call at startup
    # results: {"configured": bool, "instrumentation": {...}}
"""

import logging
from typing import Any, Dict, Optional, Union

import logfire
from fastapi import FastAPI, Request, WebSocket

from shopdesk.core.config import settings
from shopdesk.core.logger import setup_logfire_handler

_SENSITIVE_KEYS = {
    "password",
    "token",
    "auth_token",
    "access_token",
    "auth_password",
    "service_role_key",
    "secret",
}


class _LogfireState:
    """Internal state management for logfire configuration."""

    def __init__(self) -> None:
        self.configured = False
        self.instrumented = False
        self.instrument_results: Dict[str, bool] = {
            "redis": False,
            "httpx": False,
            "sqlalchemy": False,
        }

    def get_instrument_results(self) -> Dict[str, bool]:
        return self.instrument_results.copy()

    def update_instrument_result(self, key: str, value: bool) -> None:
        self.instrument_results[key] = value


_state = _LogfireState()


def _custom_scrub_callback(match: Any) -> Any:
    """Keep request-id tags readable while redacting everything else Logfire flags."""
    if any(str(part).lower() in {"rid", "request_id"} for part in match.path):
        return match.value
    return None


def custom_request_attributes_mapper(
    request: Union[Request, WebSocket], attributes: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """
    Shape the per-request attributes Logfire records.

    Credentials carried in settings payloads (Pathao access tokens, webhook
    passwords, invoice auth tokens) are redacted.
    """
    endpoint = (
        str(request.url.path)
        if hasattr(request, "url")
        else getattr(request, "path", "unknown")
    )
    method = getattr(request, "method", "WebSocket")
    request_id = (
        request.headers.get("x-request-id") if hasattr(request, "headers") else None
    )

    if attributes.get("errors"):
        return {
            "errors": attributes["errors"],
            "endpoint": endpoint,
            "method": method,
            "request_id": request_id,
        }

    filtered_values: Dict[str, Any] = {}
    for key, value in (attributes.get("values") or {}).items():
        if key.lower() in _SENSITIVE_KEYS:
            filtered_values[key] = "[REDACTED]"
        elif isinstance(value, dict):
            filtered_values[key] = {
                k: "[REDACTED]" if k.lower() in _SENSITIVE_KEYS else v
                for k, v in value.items()
            }
        else:
            filtered_values[key] = value

    return {
        "values": filtered_values,
        "endpoint": endpoint,
        "method": method,
        "request_id": request_id,
    }


def setup_logfire() -> bool:
    """
    Set up basic logfire configuration.

    Returns:
        bool: True if logfire was successfully configured, False otherwise
    """
    logger = logging.getLogger("shopdesk.logfire")

    if not settings.logfire__enabled or _state.configured:
        return _state.configured

    try:
        config_kwargs: Dict[str, Any] = {
            "service_name": settings.logfire__service_name,
            "environment": settings.logfire__environment,
        }

        if settings.logfire__disable_scrubbing:
            config_kwargs["scrubbing"] = False
        else:
            try:
                config_kwargs["scrubbing"] = logfire.ScrubbingOptions(
                    callback=_custom_scrub_callback
                )
            except (AttributeError, TypeError) as e:
                logger.warning("ScrubbingOptions not available or API changed: %s", e)
                config_kwargs["scrubbing"] = True

        if settings.logfire__token:
            config_kwargs["token"] = settings.logfire__token.get_secret_value()

        logfire.configure(**config_kwargs)
        logging.getLogger("shopdesk.startup").info(
            "Logfire initialized for service: %s", settings.logfire__service_name
        )

        setup_logfire_handler()

        _state.configured = True
        return True

    except Exception as e:
        logger.error("Failed to initialize logfire: %s", e)
        return False


def instrument_logfire() -> Dict[str, bool]:
    """
    Set up logfire instrumentation for Redis, HTTPX and SQLAlchemy.

    Returns:
        dict: Dictionary with instrumentation results for each library
    """
    logger = logging.getLogger("shopdesk.logfire")

    if not settings.logfire__enabled or _state.instrumented:
        return _state.get_instrument_results()

    if settings.logfire__instrument__redis:
        try:
            logfire.instrument_redis()
            logger.info("Logfire Redis instrumentation enabled")
            _state.update_instrument_result("redis", True)
        except Exception as e:
            logger.warning("Failed to instrument Redis with logfire: %s", e)

    if settings.logfire__instrument__httpx:
        try:
            capture_all = settings.logfire__httpx_capture_all
            logfire.instrument_httpx(capture_all=capture_all)
            logger.info(
                "Logfire HTTPX instrumentation enabled (capture_all=%s)", capture_all
            )
            _state.update_instrument_result("httpx", True)
        except Exception as e:
            logger.warning("Failed to instrument HTTPX with logfire: %s", e)

    if settings.logfire__instrument__sqlalchemy:
        try:
            from shopdesk.stores.database import engine

            logfire.instrument_sqlalchemy(engine=engine)
            logger.info("Logfire SQLAlchemy instrumentation enabled")
            _state.update_instrument_result("sqlalchemy", True)
        except Exception as e:
            logger.warning("Failed to instrument SQLAlchemy with logfire: %s", e)

    _state.instrumented = True
    return _state.get_instrument_results()


def instrument_fastapi(app: FastAPI) -> bool:
    """Instrument the FastAPI app; returns False when disabled or on failure."""
    logger = logging.getLogger("shopdesk.logfire")

    if not settings.logfire__enabled or not settings.logfire__instrument__fastapi:
        return False

    try:
        logfire.instrument_fastapi(
            app,
            request_attributes_mapper=custom_request_attributes_mapper,
            capture_headers=True,
        )
        logger.info("FastAPI instrumented with logfire")
        return True

    except Exception as e:
        logger.error("Failed to instrument FastAPI with logfire: %s", e)
        return False


def initialize_logfire(app: Optional[FastAPI] = None) -> Dict[str, Any]:
    """
    Complete logfire initialization including configuration and instrumentation.

    Args:
        app: Optional FastAPI application instance for instrumentation

    Returns:
        dict: Initialization results with status for each component
    """
    results: Dict[str, Any] = {
        "configured": False,
        "instrumentation": {
            "redis": False,
            "httpx": False,
            "sqlalchemy": False,
            "fastapi": False,
        },
    }

    results["configured"] = setup_logfire()

    if results["configured"]:
        results["instrumentation"].update(instrument_logfire())
        if app is not None:
            results["instrumentation"]["fastapi"] = instrument_fastapi(app)

    return results
