"""Retry decorator with capped exponential backoff."""

import asyncio
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    max_delay: Optional[float] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for retrying a coroutine with exponential backoff.

    Args:
        max_attempts: Total number of attempts (values below 1 mean one attempt)
        base_delay: Delay before the second attempt, doubled for each further one
        exceptions: Exception types that trigger another attempt
        max_delay: Upper bound for a single delay, unbounded when None

    Returns:
        Decorated coroutine function; the last exception is re-raised once
        all attempts are used up
    """
    attempts = max(1, max_attempts)

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == attempts - 1:
                        logger.error(f"{func.__name__}: all {attempts} attempts failed: {e}")
                        raise
                    delay = base_delay * (2**attempt)
                    if max_delay is not None:
                        delay = min(delay, max_delay)
                    logger.warning(
                        f"{func.__name__}: attempt {attempt + 1}/{attempts} failed: {e}. "
                        f"Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
            raise AssertionError("unreachable")

        return wrapper

    return decorator
