"""Retry mechanism with exponential backoff for provider calls.

This module provides a configurable retry policy and decorator that implements
exponential backoff for transient failures in HTTP requests. Only timeouts
are transient by default: connection errors and HTTP error statuses are
surfaced immediately.
"""

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import httpx

from apigateway.core.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class RetryPolicy:
    """Configuration for retry behavior with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts after the first (default: 3)
        base_delay: Delay unit in seconds (default: 1.0)
        max_delay: Optional cap on a single delay in seconds (default: uncapped)
        exponential_base: Base for exponential calculation (default: 2.0)
        retryable_exceptions: Tuple of exception types that trigger a retry

    Example:
        >>> policy = RetryPolicy(max_retries=5, base_delay=1.0)
        >>> delay = policy.calculate_delay(attempt=2)  # Returns 4.0
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: Optional[float] = None
    exponential_base: float = 2.0
    retryable_exceptions: Tuple[Type[Exception], ...] = (httpx.TimeoutException,)

    def calculate_delay(self, attempt: int) -> float:
        """Calculate the delay before the retry that follows `attempt`.

        Uses exponential backoff: delay = base_delay * (exponential_base ^ attempt),
        capped at max_delay when one is set.

        Args:
            attempt: The attempt that just failed (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (self.exponential_base**attempt)
        if self.max_delay is not None:
            return min(delay, self.max_delay)
        return delay

    def is_retryable(self, exception: Exception) -> bool:
        return isinstance(exception, self.retryable_exceptions)


def with_retry(
    policy: Optional[RetryPolicy] = None,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
) -> Callable[[F], F]:
    """Decorator that adds retry logic with exponential backoff.

    This decorator wraps async functions and retries them on the policy's
    retryable exceptions. Once retries are exhausted the last exception is
    re-raised unchanged; callers translate it.

    Args:
        policy: RetryPolicy configuration. Uses defaults if not provided.
        on_retry: Optional callback invoked with (attempt, exception) before
            each backoff sleep.

    Returns:
        Decorated function with retry logic

    Example:
        >>> @with_retry(policy=RetryPolicy(max_retries=3))
        ... async def fetch(self, url):
        ...     return await self._client.get(url)
    """
    retry_policy = policy or RetryPolicy()

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(retry_policy.max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not retry_policy.is_retryable(e):
                        raise

                    if attempt >= retry_policy.max_retries:
                        logger.warning(
                            f"Max retries ({retry_policy.max_retries}) exceeded for {func.__name__}: "
                            f"{type(e).__name__}: {e}",
                            extra={"attempt": attempt},
                        )
                        raise

                    delay = retry_policy.calculate_delay(attempt)
                    logger.warning(
                        f"Retry {attempt + 1}/{retry_policy.max_retries} for {func.__name__} "
                        f"after {type(e).__name__}: {e}. Waiting {delay:.2f}s...",
                        extra={"attempt": attempt},
                    )
                    if on_retry is not None:
                        on_retry(attempt, e)

                    await asyncio.sleep(delay)

        return wrapper  # type: ignore

    return decorator
