# =============================================
# File: flakyapi/routers/demo.py
# Purpose: Toy routes (/, /fast, /slow) that randomly fail
# =============================================
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from flakyapi.services.simulation import Outcome, Simulator, Success

router = APIRouter(tags=["demo"])


# --------- Schemas ---------

class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    message: str


_ERROR_RESPONSES = {500: {"model": ErrorResponse}}


def _simulator(request: Request) -> Simulator:
    return request.app.state.simulator


def to_response(outcome: Outcome) -> JSONResponse:
    """Success -> 200 {message}; Failure -> 500 {error, message}."""
    if isinstance(outcome, Success):
        return JSONResponse(MessageResponse(message=outcome.message).model_dump())
    body = ErrorResponse(error=outcome.error, message=outcome.message)
    return JSONResponse(body.model_dump(), status_code=500)


# --------- Routes ---------
# Plain `def` routes run in the worker threadpool, so /slow blocks one worker
# and never the event loop.

@router.get("/", response_model=MessageResponse, responses=_ERROR_RESPONSES)
def home(request: Request):
    return to_response(_simulator(request).home())


@router.get("/fast", response_model=MessageResponse, responses=_ERROR_RESPONSES)
def fast(request: Request):
    return to_response(_simulator(request).fast())


@router.get("/slow", response_model=MessageResponse, responses=_ERROR_RESPONSES)
def slow(request: Request):
    return to_response(_simulator(request).slow())
