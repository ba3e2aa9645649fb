"""
Observability Module for the Fakturownia Connector

Provides:
- Structured logging with correlation IDs
- Request metrics collection (attempts, retries, timeouts, latency)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_request_started,
    record_request_succeeded,
    record_request_failed,
    record_request_retry,
)

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_request_started",
    "record_request_succeeded",
    "record_request_failed",
    "record_request_retry",
    # Logging
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
]
