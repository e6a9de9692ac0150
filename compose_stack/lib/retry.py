"""Retry decorator with exponential backoff for unreliable operations.

Provides a decorator for retrying functions that may fail due to
transient errors (network issues, a database still initializing).

Example:
    @retry_on_failure_async(max_retries=5, base_delay=0.5)
    async def ping():
        await client.admin.command("ping")
"""

import asyncio
import logging
import random
from functools import wraps
from typing import Callable, TypeVar

from pymongo.errors import ConnectionFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default exceptions to retry on
RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    ConnectionFailure,
)


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: bool) -> float:
    """Delay before the retry following a failed `attempt` (0-based).

    Backoff schedule (with base_delay=1.0):
        Attempt 1 fails: 1s delay (+ jitter)
        Attempt 2 fails: 2s delay (+ jitter)
        Attempt 3 fails: 4s delay (+ jitter)
        (capped at max_delay)
    """
    delay = min(base_delay * (2**attempt), max_delay)

    # Add jitter (0-25% of delay)
    if jitter:
        delay += random.uniform(0, delay * 0.25)

    return delay


def retry_on_failure_async(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
    jitter: bool = True,
) -> Callable:
    """Decorator for async retry with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay between retries (default: 30.0)
        exceptions: Tuple of exception types to retry on
        jitter: Add random jitter to delay to prevent thundering herd
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        logger.warning(
                            f"{func.__name__} failed after {max_retries + 1} attempts: {e}"
                        )
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, jitter)
                    logger.info(
                        f"{func.__name__} attempt {attempt + 1} failed: {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )

                    await asyncio.sleep(delay)

            raise RuntimeError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
