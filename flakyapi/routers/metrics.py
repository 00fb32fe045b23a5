# =============================================
# File: flakyapi/routers/metrics.py
# Purpose: Expose the Prometheus registry for scraping
# =============================================
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from loguru import logger

from flakyapi.utils import slog
from flakyapi.utils.metrics import MetricsRenderError

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def get_metrics(request: Request):
    """Return the exposition text, or a JSON 500 when metrics are unavailable."""
    metrics = request.app.state.metrics
    slog.log_event("metrics.scrape", enabled=metrics.enabled)
    if not metrics.enabled:
        logger.error("Prometheus client or registry not available")
        return JSONResponse({"error": "Metrics collection is not enabled"}, status_code=500)
    try:
        payload, content_type = metrics.render()
    except MetricsRenderError as e:
        logger.error("Error generating metrics: {}", e)
        return JSONResponse(
            {"error": "Failed to generate metrics", "message": str(e)},
            status_code=500,
        )
    if request.app.state.settings.log_metrics_payload:
        slog.log_event("metrics.payload", body=payload.decode("utf-8"))
    return Response(content=payload, media_type=content_type)
