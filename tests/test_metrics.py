# =============================================
# File: tests/test_metrics.py
# Purpose: Middleware counts + /metrics endpoint over HTTP
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import random

from fastapi.testclient import TestClient

from flakyapi.main import create_app
from flakyapi.services.simulation import Simulator
from flakyapi.utils.metrics import RequestMetrics
from flakyapi.utils.settings import Settings


def _mount_client(error_rate: float = 0.0, slow_delay_ms: int = 0, seed: int | None = None):
    settings = Settings(error_rate=error_rate, slow_delay_ms=slow_delay_ms)
    metrics = RequestMetrics()
    sim = Simulator(error_rate=error_rate, slow_delay_ms=slow_delay_ms, rng=random.Random(seed))
    return TestClient(create_app(settings, request_metrics=metrics, simulator=sim)), metrics


def _value(metrics, name, labels=None):
    return metrics.registry.get_sample_value(name, labels) or 0.0


def test_metrics_lists_custom_instruments_before_traffic():
    client, _ = _mount_client()
    r = client.get("/metrics")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    for name in ("total_requests", "http_request_duration_ms", "http_requests_total"):
        assert name in r.text


def test_total_counter_counts_every_request():
    client, metrics = _mount_client(error_rate=0.2, seed=3)
    n = 0
    for path in ("/", "/fast", "/slow", "/nope", "/fast"):
        client.get(path)
        n += 1
    assert _value(metrics, "total_requests_total") == n


def test_labeled_counter_and_histogram_per_request():
    client, metrics = _mount_client(error_rate=0.0)
    r = client.get("/fast")
    assert r.status_code == 200
    assert _value(metrics, "http_requests_total", {"route": "/fast", "status": "200"}) == 1.0
    assert _value(metrics, "http_request_duration_ms_count", {"route": "/fast"}) == 1.0
    assert _value(metrics, "http_request_duration_ms_sum", {"route": "/fast"}) >= 0.0

    client.get("/fast")
    assert _value(metrics, "http_requests_total", {"route": "/fast", "status": "200"}) == 2.0
    assert _value(metrics, "http_request_duration_ms_count", {"route": "/fast"}) == 2.0


def test_failed_requests_are_labeled_500():
    client, metrics = _mount_client(error_rate=1.0)
    r = client.get("/")
    assert r.status_code == 500
    assert _value(metrics, "http_requests_total", {"route": "/", "status": "500"}) == 1.0
    assert _value(metrics, "http_requests_total", {"route": "/", "status": "200"}) == 0.0
    assert _value(metrics, "http_request_duration_ms_count", {"route": "/"}) == 1.0


def test_unknown_route_is_counted_as_404():
    client, metrics = _mount_client()
    client.get("/nope")
    assert _value(metrics, "http_requests_total", {"route": "/nope", "status": "404"}) == 1.0


def test_slow_duration_covers_configured_delay():
    client, metrics = _mount_client(error_rate=0.0, slow_delay_ms=50)
    r = client.get("/slow")
    assert r.status_code == 200
    assert _value(metrics, "http_request_duration_ms_sum", {"route": "/slow"}) >= 50.0


def test_scrape_is_itself_counted():
    client, metrics = _mount_client()
    client.get("/metrics")
    r = client.get("/metrics")
    assert 'http_requests_total{route="/metrics",status="200"} 1.0' in r.text


def test_render_failure_returns_json_500(monkeypatch):
    client, metrics = _mount_client()
    import flakyapi.utils.metrics as mmod

    def _boom(registry):
        raise ValueError("corrupted")

    monkeypatch.setattr(mmod, "generate_latest", _boom)
    r = client.get("/metrics")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate metrics", "message": "corrupted"}


def test_instrumentation_error_does_not_fail_request(monkeypatch):
    client, metrics = _mount_client()

    def _broken(*a, **k):
        raise RuntimeError("instrument broke")

    monkeypatch.setattr(metrics, "request_finished", _broken)
    r = client.get("/fast")
    assert r.status_code == 200
    assert r.json()["message"]


class _PeekingSimulator(Simulator):
    """Reads the global counter from inside the handler."""

    def __init__(self, metrics):
        super().__init__(error_rate=0.0, slow_delay_ms=0)
        self.metrics = metrics
        self.seen = []

    def fast(self):
        self.seen.append(self.metrics.registry.get_sample_value("total_requests_total"))
        return super().fast()


class _ExplodingSimulator(Simulator):
    def fast(self):
        raise RuntimeError("handler blew up")


def test_total_counter_is_incremented_before_handler_runs():
    metrics = RequestMetrics()
    sim = _PeekingSimulator(metrics)
    client = TestClient(create_app(Settings(), request_metrics=metrics, simulator=sim))
    client.get("/fast")
    client.get("/fast")
    assert sim.seen == [1.0, 2.0]


def test_unhandled_handler_error_is_observed_once_as_500():
    metrics = RequestMetrics()
    sim = _ExplodingSimulator(error_rate=0.0, slow_delay_ms=0)
    app = create_app(Settings(), request_metrics=metrics, simulator=sim)
    client = TestClient(app, raise_server_exceptions=False)
    r = client.get("/fast")
    assert r.status_code == 500
    assert _value(metrics, "http_requests_total", {"route": "/fast", "status": "500"}) == 1.0
    assert _value(metrics, "http_request_duration_ms_count", {"route": "/fast"}) == 1.0
    assert _value(metrics, "total_requests_total") == 1.0


def test_unsupported_method_is_counted_as_404():
    client, metrics = _mount_client()
    client.delete("/fast")
    assert _value(metrics, "http_requests_total", {"route": "/fast", "status": "404"}) == 1.0
    assert _value(metrics, "http_requests_total", {"route": "/fast", "status": "405"}) == 0.0
