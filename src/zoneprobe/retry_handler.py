"""Retry logic with exponential backoff for transient failures.

Used for read-only cloud queries (zone discovery) only. Resource creation is
never retried: a failed instance creation is a probe result, not a glitch.

Usage:
    @retry_with_exponential_backoff(max_attempts=3)
    def list_zones():
        ...
"""

import functools
import logging
import random
import time
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

MAX_ERROR_LENGTH = 200


def retry_with_exponential_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] = (TimeoutError, ConnectionError),
) -> Callable[[F], F]:
    """Decorator for retrying operations with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        initial_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay between retries in seconds (default: 30.0)
        jitter: Add +/-25% random jitter to each delay (default: True)
        retryable_exceptions: Exception types that trigger a retry

    Returns:
        Decorated function that retries on the given exceptions
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = initial_delay

            for attempt in range(1, max_attempts + 1):
                try:
                    result = func(*args, **kwargs)
                    if attempt > 1:
                        logger.info(
                            f"{func.__name__} succeeded on attempt {attempt}/{max_attempts}"
                        )
                    return result

                except retryable_exceptions as e:
                    if attempt >= max_attempts:
                        logger.debug(f"{func.__name__} failed after {max_attempts} attempts: {e}")
                        raise

                    actual_delay = delay
                    if jitter:
                        jitter_amount = delay * 0.25
                        actual_delay = delay + random.uniform(-jitter_amount, jitter_amount)
                    actual_delay = min(actual_delay, max_delay)

                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt}/{max_attempts}, "
                        f"retrying in {actual_delay:.2f}s: {_short_error(e)}"
                    )
                    time.sleep(actual_delay)
                    delay *= 2

            raise RuntimeError(f"{func.__name__} called with max_attempts={max_attempts}")

        return wrapper  # type: ignore

    return decorator


def _short_error(exception: Exception) -> str:
    """Truncate an error message for a single log line."""
    error_str = str(exception)
    if len(error_str) > MAX_ERROR_LENGTH:
        error_str = error_str[:MAX_ERROR_LENGTH] + "..."
    return error_str


__all__ = ["retry_with_exponential_backoff"]
