"""
Utilities for database session management and retry logic.
"""
import asyncio
import functools
import random
from typing import Callable, TypeVar, Any, Awaitable

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from swipematch.core.config import get_settings
from swipematch.core.errors import TransientStoreFailure

T = TypeVar('T')


def _find_session(args: tuple, kwargs: dict) -> AsyncSession | None:
    if isinstance(kwargs.get("session"), AsyncSession):
        return kwargs["session"]
    for arg in args:
        if isinstance(arg, AsyncSession):
            return arg
    return None


def with_retry(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator to retry an idempotent async operation on TransientStoreFailure
    with exponential backoff.

    Only decorate operations made of idempotent steps: a retry re-runs the
    whole operation from the start.

    Args:
        max_attempts: Maximum number of attempts (default STORE_RETRY_ATTEMPTS)
        base_delay: Base delay between retries in seconds (default STORE_RETRY_BASE_DELAY)
        max_delay: Maximum delay between retries in seconds (default STORE_RETRY_MAX_DELAY)
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            settings = get_settings()
            attempts = max_attempts or settings.STORE_RETRY_ATTEMPTS
            first_delay = settings.STORE_RETRY_BASE_DELAY if base_delay is None else base_delay
            delay_cap = settings.STORE_RETRY_MAX_DELAY if max_delay is None else max_delay

            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except TransientStoreFailure as e:
                    if attempt == attempts:
                        logger.error(f"{func.__name__} failed after {attempts} attempts: {e}")
                        raise

                    session = _find_session(args, kwargs)
                    if session is not None and session.in_transaction():
                        await session.rollback()

                    # Exponential backoff with ±10% jitter
                    delay = min(first_delay * (2 ** (attempt - 1)), delay_cap)
                    delay += 0.1 * delay * (2 * random.random() - 1)
                    logger.warning(f"{func.__name__} failed (attempt {attempt}/{attempts}): {e}. Retrying in {delay:.2f}s")
                    await asyncio.sleep(delay)

            raise RuntimeError("Unexpected error in retry logic")

        return wrapper
    return decorator
