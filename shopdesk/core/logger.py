"""
Core Logger Module

Centralized logging configuration for shopdesk with Logfire integration.
"""

import logging
import logging.config
import sys
from contextvars import ContextVar
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from shopdesk.core.config import settings

# LogRecord attributes that are not forwarded as structured attributes
_RECORD_BUILTINS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


def _get_setting(name: str, default: Any) -> Any:
    """Get a setting with a default fallback."""
    return getattr(settings, name, default)


@lru_cache(maxsize=1)
def _get_logfire_module() -> Any:
    """Get cached logfire module or None if not available."""
    try:
        import logfire as _lf

        return _lf
    except ImportError:
        return None


def _sanitize_attributes(attrs: Dict[str, Any]) -> Dict[str, Any]:
    """Make record attributes safe for structured logging and redact sensitive keys."""
    safe: Dict[str, Any] = {}
    redact_keywords = ("password", "secret", "token", "api_key", "apikey", "key")
    for k, v in attrs.items():
        lk = k.lower()
        if any(word in lk for word in redact_keywords):
            safe[k] = "<redacted>"
        elif isinstance(v, (str, int, float, bool)) or v is None:
            safe[k] = v
        else:
            safe[k] = repr(v)
    return safe


# Request ID of the HTTP request being served, set by RequestIDMiddleware
_request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def set_request_id(request_id: Optional[str]) -> None:
    """Set the request ID in the current context for logging."""
    _request_id_context.set(request_id)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return _request_id_context.get()


class RequestAwareLogfireHandler(logging.Handler):
    """
    Logfire handler that tags every record with the current request ID.

    Records are routed to the fallback handler when Logfire is unavailable or
    when OpenTelemetry instrumentation is suppressed for the current context.
    """

    def __init__(
        self,
        level: int | str = logging.NOTSET,
        fallback: Optional[logging.Handler] = None,
        logfire_instance: Any = None,
    ) -> None:
        super().__init__(level=level)
        self.fallback = fallback or logging.StreamHandler(sys.stderr)
        self.logfire_instance = logfire_instance

    def _instrumentation_suppressed(self) -> bool:
        try:
            from opentelemetry.context import get_current
            from opentelemetry.instrumentation.utils import (
                _SUPPRESS_INSTRUMENTATION_KEY,
            )
        except ImportError:
            return False
        return bool(get_current().get(_SUPPRESS_INSTRUMENTATION_KEY, False))

    def emit(self, record: logging.LogRecord) -> None:
        logfire = self.logfire_instance or _get_logfire_module()
        if logfire is None or self._instrumentation_suppressed():
            self.fallback.emit(record)
            return

        try:
            request_id = get_request_id()
            target = logfire.with_tags(f"rid:{request_id}") if request_id else logfire

            attributes = _sanitize_attributes(
                {k: v for k, v in record.__dict__.items() if k not in _RECORD_BUILTINS}
            )
            attributes["code.filepath"] = record.pathname
            attributes["code.lineno"] = record.lineno
            attributes["code.function"] = record.funcName

            try:
                msg = record.getMessage()
            except (TypeError, ValueError):
                msg = str(record.msg)

            target.log(
                level=record.levelname.lower(),
                msg_template=msg,
                attributes=attributes,
                exc_info=record.exc_info,
            )
        except (AttributeError, TypeError, ValueError):
            self.fallback.emit(record)


def get_logging_config() -> Dict[str, Any]:
    """
    Generate base logging configuration (console + file).
    Logfire handler must be added separately via setup_logfire_handler().
    """
    log_level = (_get_setting("log_level", "info") or "info").upper()

    logs_dir = Path(_get_setting("log__dir", "logs"))
    logs_dir.mkdir(parents=True, exist_ok=True)

    file_path = _get_setting("log__file_path", None)
    if file_path is None:
        file_path = str(logs_dir / "shopdesk.log")

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "simple",
            "stream": sys.stdout,
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": _get_setting("log__file_level", "INFO"),
            "formatter": "detailed",
            "filename": file_path,
            "maxBytes": int(_get_setting("log__file_max_bytes", 10 * 1024 * 1024)),
            "backupCount": int(_get_setting("log__file_backup_count", 3)),
            "encoding": "utf-8",
        },
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s - %(name)s - %(levelname)s - "
                    "%(module)s:%(lineno)d - %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            "shopdesk": {
                "level": log_level,
                "handlers": ["console", "file"],
                "propagate": False,
            },
            "uvicorn.access": {"level": "WARNING", "propagate": True},
            "httpx": {"level": "WARNING", "propagate": True},
            "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
    }


def setup_logfire_handler() -> None:
    """
    Attach the Logfire handler to the ``shopdesk`` logger.

    Must run after both logfire.configure() and logging.config.dictConfig(),
    otherwise the handler is overwritten. Idempotent.
    """
    if not _get_setting("logfire__enabled", False):
        return

    app_logger = logging.getLogger("shopdesk")
    if any(isinstance(h, RequestAwareLogfireHandler) for h in app_logger.handlers):
        return

    logfire = _get_logfire_module()
    if logfire is None:
        print("⚠️  Logfire not available, using standard logging only")
        return

    fallback_handler = logging.StreamHandler(sys.stderr)
    fallback_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    app_logger.addHandler(
        RequestAwareLogfireHandler(
            level=_get_setting("log_level", "INFO").upper(),
            fallback=fallback_handler,
            logfire_instance=logfire,
        )
    )
    logging.getLogger("shopdesk.logfire").info("Logfire logging handler configured")


@lru_cache(maxsize=1)
def setup_logging() -> None:
    """
    Set up base logging configuration (console + file handlers).
    Called once; later calls are no-ops.
    """
    logging.config.dictConfig(get_logging_config())

    logging.getLogger("shopdesk.startup").info(
        "Logging system initialized - Environment: %s, Level: %s, Logfire: %s",
        _get_setting("environment", "development"),
        _get_setting("log_level", "info"),
        _get_setting("logfire__enabled", False),
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with automatic 'shopdesk' prefix.

    Example:
        logger = get_logger(__name__)  # Returns 'shopdesk.module_name'
    """
    setup_logging()

    if not name.startswith("shopdesk"):
        name = f"shopdesk.{name}"

    return logging.getLogger(name)
