# =============================================
# File: flakyapi/utils/slog.py
# Purpose: Minimal structured logging (JSON) + helpers for the request middleware
# =============================================
from __future__ import annotations
import json
import logging
import os
import uuid
from typing import Any, Dict

_LOGGER_NAME = "flakyapi"
_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_logger = logging.getLogger(_LOGGER_NAME)
if not _logger.handlers:
    _logger.setLevel(getattr(logging, _LEVEL, logging.INFO))
    _handler = logging.StreamHandler()
    # Emit the message as-is; we pre-format JSON strings ourselves
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_handler)
    _logger.propagate = True  # allow pytest caplog to capture


def set_level(level: str) -> None:
    _logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def enabled_for(level: int) -> bool:
    return _logger.isEnabledFor(level)


def new_request_id() -> str:
    return uuid.uuid4().hex


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    if not _logger.isEnabledFor(level):
        return
    rec = {"event": event}
    rec.update(fields)
    _logger.log(level, json.dumps(rec, ensure_ascii=False))


def finalize_request_log(
    request_id: str,
    method: str,
    path: str,
    status: int,
    latency_ms: float,
    client_ip: str | None,
    ctx: Dict[str, Any] | None = None,
) -> None:
    payload: Dict[str, Any] = {
        "event": "request.completed",
        "request_id": request_id,
        "method": method,
        "path": path,
        "status": status,
        "latency_ms": round(latency_ms, 3),
        "client_ip": client_ip or "",
    }
    if ctx:
        payload.update(ctx)
    _logger.info(json.dumps(payload, ensure_ascii=False))
