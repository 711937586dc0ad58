"""
Reliability utilities for upstream integrations.

Circuit breaker guarding the directions provider: after repeated failures the
circuit opens and calls fail fast instead of waiting on a dead upstream.
"""

from time import monotonic
from typing import Callable, Any

from backend.app.core.config import settings


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Simple Circuit Breaker implementation.
    If 'failure_threshold' consecutive failures occur, the circuit opens and
    rejects calls for 'reset_timeout' seconds. The first call after that runs
    HALF_OPEN: success closes the circuit, failure re-opens it.
    """
    def __init__(self, failure_threshold: int = 5, reset_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failures = 0
        self.last_failure_time = 0.0
        self.state = "CLOSED"  # CLOSED, OPEN, HALF_OPEN

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if monotonic() - self.last_failure_time > self.reset_timeout:
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError("Circuit is OPEN")

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise

        self.reset_state()
        return result

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = monotonic()
        if self.state == "HALF_OPEN" or self.failures >= self.failure_threshold:
            self.state = "OPEN"

    def reset_state(self):
        self.failures = 0
        self.state = "CLOSED"


# Shared instance for the directions provider
directions_circuit_breaker = CircuitBreaker(
    failure_threshold=settings.directions_failure_threshold,
    reset_timeout=settings.directions_reset_timeout_seconds,
)
