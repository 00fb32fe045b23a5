# =============================================
# File: flakyapi/services/simulation.py
# Purpose: Demo route logic; random failures + blocking delay as plain results
# =============================================
from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Union

ERROR_LABEL = "Internal Server Error"
ERROR_MESSAGE = "Random error occurred"

HOME_MESSAGE = "Welcome to the server. Use /fast or /slow routes."
FAST_MESSAGE = "Hello! This is the fast route."
SLOW_MESSAGE = "Heavy task completed. This was the slow route."


@dataclass(frozen=True)
class Success:
    message: str


@dataclass(frozen=True)
class Failure:
    error: str
    message: str


Outcome = Union[Success, Failure]


@dataclass
class Simulator:
    """
    Holds the knobs shared by the demo routes.
    rng and sleep are injectable so tests can pin randomness and time.
    """
    error_rate: float = 0.2
    slow_delay_ms: int = 5000
    rng: random.Random | None = None
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.rng is None:
            self.rng = random.Random()

    def _fails(self) -> bool:
        return self.rng.random() < self.error_rate

    def _failure(self) -> Failure:
        return Failure(error=ERROR_LABEL, message=ERROR_MESSAGE)

    def home(self) -> Outcome:
        if self._fails():
            return self._failure()
        return Success(HOME_MESSAGE)

    def fast(self) -> Outcome:
        if self._fails():
            return self._failure()
        return Success(FAST_MESSAGE)

    def slow(self) -> Outcome:
        # Failure is decided before the delay, so a failing /slow answers at once.
        if self._fails():
            return self._failure()
        self.sleep(self.slow_delay_ms / 1000.0)
        return Success(SLOW_MESSAGE)
