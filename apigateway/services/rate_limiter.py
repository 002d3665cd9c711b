"""Client-side rate limiting for registered providers.

Each provider gets a fixed window: at most ``policy.requests`` calls are
let through per ``policy.period`` seconds. The window restarts on the first
check made after it has elapsed.
"""

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from apigateway.core.logging import get_logger
from apigateway.exceptions import RateLimitError
from apigateway.providers.config import RateLimitPolicy

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: Optional[int]
    remaining: Optional[int]
    reset_time: Optional[int]
    retry_after: Optional[int] = None


@dataclass
class RateLimitState:
    """Window start and request count for one provider."""
    requests: int = 0
    window_start: float = field(default_factory=time.time)


class RateLimiter:
    """In-memory fixed window rate limiter keyed by provider name.

    The check and the increment happen under one per-provider lock, so two
    concurrent callers can never both take the last slot.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize rate limiter.

        Args:
            clock: Time source returning seconds (injectable for tests)
        """
        self._clock = clock
        self._states: Dict[str, RateLimitState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, provider: str) -> asyncio.Lock:
        lock = self._locks.get(provider)
        if lock is None:
            lock = self._locks[provider] = asyncio.Lock()
        return lock

    async def check_and_increment(
        self, provider: str, policy: Optional[RateLimitPolicy]
    ) -> RateLimitResult:
        """Take one slot from the provider's current window.

        Args:
            provider: Provider name
            policy: The provider's policy; None means unlimited

        Returns:
            RateLimitResult describing the accepted request

        Raises:
            RateLimitError: If the window is already full (no increment is made)
        """
        if policy is None:
            return RateLimitResult(allowed=True, limit=None, remaining=None, reset_time=None)

        async with self._lock_for(provider):
            now = self._clock()
            state = self._states.get(provider)

            if state is None or now - state.window_start >= policy.period:
                state = RateLimitState(requests=0, window_start=now)
                self._states[provider] = state

            reset_time = int(state.window_start + policy.period)

            if state.requests >= policy.requests:
                retry_after = max(0, math.ceil(policy.period - (now - state.window_start)))
                logger.warning(
                    f"Rate limit exceeded for provider '{provider}' "
                    f"({state.requests}/{policy.requests} in {policy.period}s)",
                    extra={"provider": provider},
                )
                raise RateLimitError(
                    f"Rate limit exceeded for provider '{provider}'",
                    provider=provider,
                    source="local",
                    retry_after=retry_after,
                )

            state.requests += 1
            return RateLimitResult(
                allowed=True,
                limit=policy.requests,
                remaining=policy.requests - state.requests,
                reset_time=reset_time,
            )

    def get_state(self, provider: str) -> Optional[RateLimitState]:
        return self._states.get(provider)

    def reset(self, provider: Optional[str] = None) -> None:
        """Forget the window for one provider, or for all of them."""
        if provider is None:
            self._states.clear()
            self._locks.clear()
        else:
            self._states.pop(provider, None)
            self._locks.pop(provider, None)
