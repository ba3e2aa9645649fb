"""
Structured Logging with Correlation IDs

Provides logging utilities that automatically include:
- tool_name: Links logs to the tool invocation that triggered them
- operation: Links logs to a named Fakturownia operation
- method / path: The HTTP exchange being performed
- attempt: Attempt number within a retried request

Usage:
    from core.observability.logging import get_logger, with_correlation

    logger = get_logger(__name__)

    with with_correlation(tool_name="create_invoice", operation="create_invoice"):
        logger.info("Creating invoice")  # Automatically includes correlation IDs
"""

import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextlib import contextmanager


# =============================================================================
# Correlation Context
# =============================================================================

@dataclass
class CorrelationContext:
    """Context for correlating logs across one tool call."""
    tool_name: Optional[str] = None
    operation: Optional[str] = None
    method: Optional[str] = None
    path: Optional[str] = None
    attempt: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "CorrelationContext":
        """Create a new context with merged values."""
        data = self.to_dict()
        data.update({k: v for k, v in kwargs.items() if v is not None})
        return CorrelationContext(**data)


# Context variable for async-safe correlation (each task sees its own copy)
_correlation_context: ContextVar[CorrelationContext] = ContextVar(
    "correlation_context",
    default=CorrelationContext()
)


def get_correlation_context() -> CorrelationContext:
    """Get the current correlation context."""
    return _correlation_context.get()


@contextmanager
def with_correlation(**kwargs):
    """
    Context manager to set correlation IDs for logging.

    Usage:
        with with_correlation(operation="get_invoice", method="GET"):
            logger.info("Fetching")  # Will include operation and method
    """
    old_ctx = get_correlation_context()
    new_ctx = old_ctx.merge(**kwargs)
    token = _correlation_context.set(new_ctx)
    try:
        yield new_ctx
    finally:
        _correlation_context.reset(token)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Structured JSON Formatter
# =============================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON formatter that includes correlation context.

    Output format:
    {
        "timestamp": "2024-01-09T12:00:00.000Z",
        "level": "WARNING",
        "logger": "connectors.fakturownia.fa_client",
        "message": "Request failed with 503, retrying",
        "operation": "list_invoices",
        "attempt": 2,
        "delay_s": 1.21
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        # Base log structure
        log_data = {
            "timestamp": _utcnow().strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add correlation context
        ctx = get_correlation_context()
        log_data.update(ctx.to_dict())

        # Add extra fields from log record
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter that includes key correlation IDs.

    Output format:
    2024-01-09 12:00:00 [INFO ] api.services.tool_registry [list_invoices/GET /invoices.json#2]: Calling tool
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_correlation_context()

        # Build correlation prefix
        correlation_parts = []
        if ctx.tool_name:
            correlation_parts.append(ctx.tool_name)
        elif ctx.operation:
            correlation_parts.append(ctx.operation)
        if ctx.method and ctx.path:
            request = f"{ctx.method} {ctx.path}"
            if ctx.attempt:
                request += f"#{ctx.attempt}"
            correlation_parts.append(request)

        correlation = "/".join(correlation_parts) if correlation_parts else "-"

        timestamp = _utcnow().strftime("%Y-%m-%d %H:%M:%S")

        msg = f"{timestamp} [{record.levelname:5}] {record.name} [{correlation}]: {record.getMessage()}"

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            msg += " " + " ".join(f"{k}={v}" for k, v in extra_fields.items())

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


# =============================================================================
# Logger with Correlation Support
# =============================================================================

class CorrelatedLogger:
    """
    Logger wrapper that automatically includes correlation context.

    Also supports adding extra fields to individual log calls.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, *args, **kwargs):
        """Log with extra fields support."""
        extra_fields = kwargs.pop("extra_fields", {})
        exc_info = kwargs.pop("exc_info", None)
        if exc_info is True:
            exc_info = sys.exc_info()

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "(unknown file)",
            0,
            msg,
            args,
            exc_info,
        )
        record.extra_fields = extra_fields

        self._logger.handle(record)

    def debug(self, msg: str, *args, **kwargs):
        if self._logger.isEnabledFor(logging.DEBUG):
            self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        if self._logger.isEnabledFor(logging.INFO):
            self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        if self._logger.isEnabledFor(logging.WARNING):
            self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        if self._logger.isEnabledFor(logging.ERROR):
            self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs["exc_info"] = True
        self.error(msg, *args, **kwargs)

    # Delegate other methods
    def setLevel(self, level):
        self._logger.setLevel(level)

    def isEnabledFor(self, level):
        return self._logger.isEnabledFor(level)


# =============================================================================
# Logger Factory
# =============================================================================

_loggers: Dict[str, CorrelatedLogger] = {}
_configured = False


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    force: bool = False,
):
    """
    Configure logging for the application.

    Args:
        level: Logging level
        json_format: If True, use JSON format; otherwise human-readable
        force: Reconfigure even if logging was already configured
    """
    global _configured

    if _configured and not force:
        return

    # Logs go to stderr so stdout stays free for tool output
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in [h for h in root.handlers if getattr(h, "_fakturownia", False)]:
        root.removeHandler(existing)
    handler._fakturownia = True
    root.addHandler(handler)

    for logger_name in ["api", "connectors", "core"]:
        logging.getLogger(logger_name).setLevel(level)

    # Reduce noise from third-party libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> CorrelatedLogger:
    """
    Get a correlated logger for the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        CorrelatedLogger instance
    """
    if name not in _loggers:
        if not _configured:
            configure_logging()

        base_logger = logging.getLogger(name)
        _loggers[name] = CorrelatedLogger(base_logger)

    return _loggers[name]


# =============================================================================
# Convenience Functions for Tool Calls
# =============================================================================

def log_tool_call(tool_name: str, **kwargs):
    """Log a tool invocation with correlation."""
    logger = get_logger("api.tools")
    logger.info(f"Tool called: {tool_name}", extra_fields=kwargs)


def log_tool_error(tool_name: str, error: str, **kwargs):
    """Log a failed tool invocation with correlation."""
    logger = get_logger("api.tools")
    logger.error(f"Tool failed: {tool_name} - {error}", extra_fields=kwargs)
