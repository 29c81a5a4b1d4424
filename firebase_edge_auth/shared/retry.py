"""
Retry policy for calls to Google endpoints.
"""

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from .logging import get_logger

BACKOFF_STRATEGIES = ("exponential", "linear", "fixed")


class RetryConfig:
    """How often and how patiently a call is retried."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 1.0,
                 max_delay: float = 60.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 backoff_strategy: str = "exponential"):
        if backoff_strategy not in BACKOFF_STRATEGIES:
            raise ValueError(f"Unknown backoff strategy: {backoff_strategy}")
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy


class RetryError(Exception):
    """Raised once every attempt has failed; wraps the last failure."""

    def __init__(self, message: str, last_exception: Exception, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def retry_on_exception(exceptions: Tuple[Type[BaseException], ...] = (Exception,),
                       config: Optional[RetryConfig] = None) -> Callable:
    """Retry an async callable while it raises one of ``exceptions``.

    Other exceptions propagate on the first attempt. After the last attempt a
    ``RetryError`` is raised from the final failure.
    """
    config = config or RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        logger = get_logger(f"firebase_auth.retry.{func.__name__}")

        async def wrapper(*args, **kwargs) -> Any:
            attempt = 1
            while True:
                try:
                    result = await func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= config.max_attempts:
                        logger.error("Giving up", attempts=attempt, error=str(e))
                        raise RetryError(
                            f"{func.__name__} failed after {attempt} attempts",
                            last_exception=e,
                            attempts=attempt,
                        ) from e

                    delay = _calculate_delay(attempt, config)
                    logger.warning("Attempt failed, retrying", attempt=attempt, delay=delay, error=str(e))
                    await asyncio.sleep(delay)
                    attempt += 1
                    continue

                if attempt > 1:
                    logger.info("Succeeded after retry", attempts=attempt)
                return result

        wrapper.__name__ = func.__name__
        return wrapper

    return decorator


def _calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Backoff before the attempt following ``attempt``, capped and jittered by 10%."""
    if config.backoff_strategy == "exponential":
        delay = config.base_delay * config.exponential_base ** (attempt - 1)
    elif config.backoff_strategy == "linear":
        delay = config.base_delay * attempt
    else:
        delay = config.base_delay

    delay = min(delay, config.max_delay)
    if config.jitter:
        delay += random.uniform(-0.1, 0.1) * delay
    return max(0.0, delay)
