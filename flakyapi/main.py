# =============================================
# File: flakyapi/main.py
# Purpose: App factory, request instrumentation middleware, catch-all errors
# =============================================
from __future__ import annotations
from http import HTTPStatus
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from flakyapi.routers import demo, metrics
from flakyapi.services.simulation import Simulator
from flakyapi.utils import slog
from flakyapi.utils.logging import configure_logging
from flakyapi.utils.metrics import NoopRequestMetrics, RequestMetrics, build_request_metrics
from flakyapi.utils.settings import PORT, Settings, load_settings
from flakyapi.utils.timing import timer

ROUTES = ("/", "/fast", "/slow", "/metrics")

NOT_FOUND_BODY = {"error": "Not Found", "message": "The requested resource does not exist."}


def create_app(
    settings: Settings | None = None,
    request_metrics: RequestMetrics | NoopRequestMetrics | None = None,
    simulator: Simulator | None = None,
) -> FastAPI:
    """
    Build a self-contained app. Each call owns a fresh registry unless one is
    passed in, so tests never share counters.
    """
    settings = settings or load_settings()
    slog.set_level(settings.log_level)

    app = FastAPI(title="flakyapi", docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.metrics = request_metrics if request_metrics is not None else build_request_metrics(settings)
    app.state.simulator = simulator or Simulator(
        error_rate=settings.error_rate,
        slow_delay_ms=settings.slow_delay_ms,
    )

    @app.middleware("http")
    async def _instrumentation_middleware(request: Request, call_next):
        instruments = request.app.state.metrics
        req_id = slog.new_request_id()
        path = str(request.url.path)
        client_ip = request.client.host if request.client else None

        with timer() as elapsed_ms:
            _record(instruments.request_started)
            if slog.enabled_for(logging.DEBUG):
                slog.log_event(
                    "request.received",
                    level=logging.DEBUG,
                    request_id=req_id,
                    method=request.method,
                    path=path,
                    total_requests=instruments.requests_seen(),
                )
            try:
                response = await call_next(request)
            except Exception as e:
                latency_ms = elapsed_ms()
                _record(instruments.request_finished, path, 500, latency_ms)
                slog.log_event(
                    "request.error",
                    request_id=req_id,
                    path=path,
                    method=request.method,
                    latency_ms=round(latency_ms, 3),
                    client_ip=client_ip,
                    error=str(e),
                )
                raise
            latency_ms = elapsed_ms()

        _record(instruments.request_finished, path, response.status_code, latency_ms)
        slog.finalize_request_log(
            request_id=req_id,
            method=request.method,
            path=path,
            status=response.status_code,
            latency_ms=latency_ms,
            client_ip=client_ip,
        )
        response.headers["X-Request-ID"] = req_id
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods on known paths are both "not found".
        if exc.status_code in (404, 405):
            slog.log_event("route.not_found", method=request.method, path=str(request.url.path))
            return JSONResponse(NOT_FOUND_BODY, status_code=404)
        return JSONResponse(
            {"error": HTTPStatus(exc.status_code).phrase, "message": str(exc.detail)},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    app.include_router(demo.router)
    app.include_router(metrics.router)
    return app


def _record(fn, *args) -> None:
    # Instrumentation must never fail the request it observes.
    try:
        fn(*args)
    except Exception:
        logger.exception("Request instrumentation failed")


def log_banner(host: str = "localhost") -> None:
    logger.info("Server running on http://{}:{}", host, PORT)
    logger.info("Available routes:")
    for route in ROUTES:
        logger.info("  - http://{}:{}{}", host, PORT, route)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    configure_logging(app.state.settings)
    log_banner()
    uvicorn.run(app, host="0.0.0.0", port=PORT)
