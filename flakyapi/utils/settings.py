# =============================================
# File: flakyapi/utils/settings.py
# Purpose: Runtime settings read from the environment
# =============================================
from __future__ import annotations
import os

from pydantic import BaseModel, Field

# Listen port is fixed; only the bind host is configurable from the CLI.
PORT = 8000

_TRUE = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """
    Knobs for the demo server.
    - metrics_enabled: build live Prometheus instrumentation (False -> no-op).
    - error_rate: probability that a demo route returns a simulated failure.
    - slow_delay_ms: how long /slow blocks its worker before answering.
    - log_level: level for both the JSON request log and the console log.
    - log_file: optional rotating log file for console messages.
    - log_metrics_payload: echo the rendered exposition text on every scrape.
    """
    metrics_enabled: bool = True
    error_rate: float = Field(0.2, ge=0.0, le=1.0)
    slow_delay_ms: int = Field(5000, ge=0)
    log_level: str = "INFO"
    log_file: str | None = None
    log_metrics_payload: bool = False


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE


def load_settings() -> Settings:
    """Read settings at call time so tests/env overrides take effect."""
    return Settings(
        metrics_enabled=_flag("METRICS_ENABLED", "true"),
        error_rate=float(os.getenv("ERROR_RATE", "0.2")),
        slow_delay_ms=int(os.getenv("SLOW_DELAY_MS", "5000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE") or None,
        log_metrics_payload=_flag("LOG_METRICS_PAYLOAD", "false"),
    )
