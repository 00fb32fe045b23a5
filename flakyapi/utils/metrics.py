# =============================================
# File: flakyapi/utils/metrics.py
# Purpose: Prometheus registry + request instruments for /metrics
# =============================================
from __future__ import annotations
from typing import Dict, Optional, Tuple

from loguru import logger
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.registry import Collector

from flakyapi.utils.settings import Settings

# Request duration buckets, in milliseconds (+Inf is appended by the client)
DURATION_BUCKETS_MS: Tuple[float, ...] = (0.10, 5, 15, 50, 100, 200, 300, 400, 500)


class MetricsConfigError(RuntimeError):
    """Raised at startup when the instrument set is inconsistent."""


class MetricsDisabledError(RuntimeError):
    """Raised when rendering is requested but metrics were never initialized."""


class MetricsRenderError(RuntimeError):
    """Raised when the exposition payload could not be produced."""


class MetricsRegistry:
    """
    Owns one CollectorRegistry. Instruments are created unregistered
    (registry=None) and added through register(), so every name check goes
    through one place. Rendering follows registration order.
    """

    def __init__(self) -> None:
        self._registry = CollectorRegistry()

    def register(self, instrument: Collector) -> Collector:
        try:
            self._registry.register(instrument)
        except ValueError as e:
            # prometheus_client reports clashes as "Duplicated timeseries ..."
            raise MetricsConfigError(str(e)) from e
        return instrument

    def collect_default_metrics(self) -> None:
        """Process, platform and GC collectors; values are read at render time."""
        ProcessCollector(registry=self._registry)
        PlatformCollector(registry=self._registry)
        GCCollector(registry=self._registry)

    def render(self) -> Tuple[bytes, str]:
        try:
            payload = generate_latest(self._registry)
        except Exception as e:
            raise MetricsRenderError(str(e)) from e
        return payload, CONTENT_TYPE_LATEST

    def get_sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        return self._registry.get_sample_value(name, labels or {})


class RequestMetrics:
    """Live instrumentation: one global counter, one histogram, one labeled counter."""

    enabled = True

    def __init__(self, registry: MetricsRegistry | None = None) -> None:
        self.registry = registry or MetricsRegistry()
        self.registry.collect_default_metrics()

        self.request_duration = self.registry.register(Histogram(
            "http_request_duration_ms",
            "Duration of HTTP requests in ms",
            labelnames=("route",),
            buckets=DURATION_BUCKETS_MS,
            registry=None,
        ))
        self.requests_by_route = self.registry.register(Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            labelnames=("route", "status"),
            registry=None,
        ))
        self.total_requests = self.registry.register(Counter(
            "total_requests",
            "Total number of requests received",
            registry=None,
        ))

    def request_started(self) -> None:
        self.total_requests.inc()

    def request_finished(self, route: str, status: int, duration_ms: float) -> None:
        self.request_duration.labels(route).observe(max(0.0, duration_ms))
        self.requests_by_route.labels(route, str(status)).inc()

    def requests_seen(self) -> int:
        for metric in self.total_requests.collect():
            for sample in metric.samples:
                if sample.name.endswith("_total"):
                    return int(sample.value)
        return 0

    def render(self) -> Tuple[bytes, str]:
        return self.registry.render()


class NoopRequestMetrics:
    """Same surface as RequestMetrics; used when metrics are off or failed to start."""

    enabled = False

    def request_started(self) -> None:
        pass

    def request_finished(self, route: str, status: int, duration_ms: float) -> None:
        pass

    def requests_seen(self) -> int:
        return 0

    def render(self) -> Tuple[bytes, str]:
        raise MetricsDisabledError("Metrics collection is not enabled")


def build_request_metrics(settings: Settings) -> RequestMetrics | NoopRequestMetrics:
    """Decide once at startup whether requests are instrumented."""
    if not settings.metrics_enabled:
        logger.warning("Metrics disabled by configuration (METRICS_ENABLED)")
        return NoopRequestMetrics()
    try:
        metrics = RequestMetrics()
    except Exception as e:
        logger.error("Failed to initialize Prometheus metrics: {}", e)
        return NoopRequestMetrics()
    logger.info("Prometheus registry created; default and custom metrics registered")
    return metrics
