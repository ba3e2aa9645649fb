"""
Metrics Collection for the Fakturownia Connector

Collects and exposes metrics for:
- Requests (started, succeeded, failed)
- Attempts (retries, timeouts)
- Request latency (average, p95)

Metrics live in memory only and reset with the process.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, List, Optional, Any
import statistics


def _request_counters() -> Dict[str, int]:
    return {"started": 0, "succeeded": 0, "failed": 0, "retries": 0, "timeouts": 0}


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class RequestMetrics:
    """Metrics for logical requests (one per executor call)."""
    started: int = 0
    succeeded: int = 0
    failed: int = 0
    in_flight: int = 0
    retries: int = 0
    timeouts: int = 0

    # By endpoint label ("GET /invoices/{id}.json")
    by_endpoint: Dict[str, Dict[str, int]] = field(default_factory=lambda: defaultdict(_request_counters))

    # By failure class name
    failures_by_type: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class TimingMetrics:
    """Request latency metrics."""
    # Raw timing samples (keep last N for percentile calculations)
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    by_endpoint: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, endpoint: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if endpoint:
            self.by_endpoint[endpoint].append(duration_ms)
            if len(self.by_endpoint[endpoint]) > self.max_samples:
                self.by_endpoint[endpoint] = self.by_endpoint[endpoint][-self.max_samples:]

    def get_average(self, endpoint: str = None) -> float:
        """Get average latency."""
        samples = self.by_endpoint.get(endpoint, []) if endpoint else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, endpoint: str = None) -> float:
        """Get 95th percentile latency."""
        samples = self.by_endpoint.get(endpoint, []) if endpoint else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for Fakturownia API requests.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_request_started("GET /invoices.json")
        metrics.record_request_succeeded("GET /invoices.json", duration_ms=120)
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.requests = RequestMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def reset(self) -> None:
        """Drop all collected metrics."""
        with self._lock:
            self.requests = RequestMetrics()
            self.timings = TimingMetrics()

    # =========================================================================
    # Request Metrics
    # =========================================================================

    def record_request_started(self, endpoint: str):
        """Record the start of a logical request."""
        with self._lock:
            self.requests.started += 1
            self.requests.in_flight += 1
            self.requests.by_endpoint[endpoint]["started"] += 1

    def record_request_succeeded(self, endpoint: str, duration_ms: float = None):
        """Record a successful request."""
        with self._lock:
            self.requests.succeeded += 1
            self.requests.in_flight = max(0, self.requests.in_flight - 1)
            self.requests.by_endpoint[endpoint]["succeeded"] += 1

            if duration_ms is not None:
                self.timings.add_sample(duration_ms, endpoint)

    def record_request_failed(self, endpoint: str, error_type: str, duration_ms: float = None):
        """Record a request that ended with a raised failure."""
        with self._lock:
            self.requests.failed += 1
            self.requests.in_flight = max(0, self.requests.in_flight - 1)
            self.requests.by_endpoint[endpoint]["failed"] += 1
            self.requests.failures_by_type[error_type] += 1

            if duration_ms is not None:
                self.timings.add_sample(duration_ms, endpoint)

    def record_request_retry(self, endpoint: str, timed_out: bool = False):
        """Record a retryable attempt outcome."""
        with self._lock:
            self.requests.retries += 1
            self.requests.by_endpoint[endpoint]["retries"] += 1
            if timed_out:
                self.requests.timeouts += 1
                self.requests.by_endpoint[endpoint]["timeouts"] += 1

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def get_timing_stats(self, endpoint: str = None) -> Dict[str, float]:
        """Get latency statistics for an endpoint (or overall)."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(endpoint),
                "p95_ms": self.timings.get_p95(endpoint),
                "sample_count": len(self.timings.by_endpoint.get(endpoint, []) if endpoint else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "requests": {
                    "started": self.requests.started,
                    "succeeded": self.requests.succeeded,
                    "failed": self.requests.failed,
                    "in_flight": self.requests.in_flight,
                    "retries": self.requests.retries,
                    "timeouts": self.requests.timeouts,
                    "by_endpoint": {k: dict(v) for k, v in self.requests.by_endpoint.items()},
                    "failures_by_type": dict(self.requests.failures_by_type),
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_endpoint": {
                        endpoint: {
                            "average_ms": self.timings.get_average(endpoint),
                            "p95_ms": self.timings.get_p95(endpoint),
                        }
                        for endpoint in self.timings.by_endpoint.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_request_started(endpoint: str):
    get_metrics().record_request_started(endpoint)


def record_request_succeeded(endpoint: str, duration_ms: float = None):
    get_metrics().record_request_succeeded(endpoint, duration_ms)


def record_request_failed(endpoint: str, error_type: str, duration_ms: float = None):
    get_metrics().record_request_failed(endpoint, error_type, duration_ms)


def record_request_retry(endpoint: str, timed_out: bool = False):
    get_metrics().record_request_retry(endpoint, timed_out)
