"""
Circuit breaker guarding each remote Google service.
"""

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict

from .logging import get_logger


class CircuitBreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenException(Exception):
    """Raised instead of calling a service whose breaker is open."""


class CircuitBreaker:
    """Stops calling a service after ``failure_threshold`` consecutive failures.

    Once ``recovery_timeout`` seconds have passed since the last failure a
    single trial call is let through (half-open). Success closes the breaker,
    failure opens it again.
    """

    def __init__(self,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 name: str = "default"):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self.logger = get_logger(f"firebase_auth.circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time = 0.0

    def _allow_call(self) -> bool:
        if self._state != CircuitBreakerState.OPEN:
            return True

        if time.time() - self._last_failure_time < self.recovery_timeout:
            return False

        self._state = CircuitBreakerState.HALF_OPEN
        self.logger.info("Trial call after recovery timeout", breaker=self.name)
        return True

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Run ``func`` unless the breaker is open; every exception counts as a failure."""
        if not self._allow_call():
            raise CircuitBreakerOpenException(f"Circuit breaker '{self.name}' is open")

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self):
        if self._state == CircuitBreakerState.HALF_OPEN:
            self.logger.info("Service recovered, breaker closed", breaker=self.name)
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._success_count += 1

    def _on_failure(self):
        self._failure_count += 1
        self._success_count = 0
        self._last_failure_time = time.time()

        tripped = self._failure_count >= self.failure_threshold
        if self._state == CircuitBreakerState.HALF_OPEN or tripped:
            self._state = CircuitBreakerState.OPEN
            self.logger.warning(
                "Breaker opened",
                breaker=self.name,
                failure_count=self._failure_count,
                threshold=self.failure_threshold,
            )

    def get_state(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "last_failure_time": self._last_failure_time,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
        }

    def is_open(self) -> bool:
        return self._state == CircuitBreakerState.OPEN
