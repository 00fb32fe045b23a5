# =============================================
# File: tests/test_metrics_disabled.py
# Purpose: Server keeps serving without instrumentation
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient

from flakyapi.utils.metrics import NoopRequestMetrics


def _mount_client(monkeypatch):
    monkeypatch.setenv("METRICS_ENABLED", "false")
    monkeypatch.setenv("ERROR_RATE", "0")
    monkeypatch.setenv("SLOW_DELAY_MS", "0")

    from flakyapi.main import create_app
    app = create_app()
    return TestClient(app), app


def test_metrics_endpoint_reports_disabled(monkeypatch):
    client, app = _mount_client(monkeypatch)
    assert isinstance(app.state.metrics, NoopRequestMetrics)
    r = client.get("/metrics")
    assert r.status_code == 500
    assert r.json() == {"error": "Metrics collection is not enabled"}


def test_routes_still_served(monkeypatch):
    client, _ = _mount_client(monkeypatch)
    for path in ("/", "/fast", "/slow"):
        r = client.get(path)
        assert r.status_code == 200
    assert client.get("/nope").status_code == 404
