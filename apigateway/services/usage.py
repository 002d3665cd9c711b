"""Per-provider usage counters."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional


@dataclass
class UsageStats:
    requests_made: int = 0
    last_request: Optional[datetime] = None


class UsageTracker:
    """Counts successful network requests per provider.

    Counters only grow; they are dropped when the provider is unregistered.
    """

    def __init__(self) -> None:
        self._stats: Dict[str, UsageStats] = {}

    def record(self, provider: str, at: Optional[datetime] = None) -> UsageStats:
        stats = self._stats.setdefault(provider, UsageStats())
        stats.requests_made += 1
        stats.last_request = at or datetime.now(timezone.utc)
        return stats

    def get(self, provider: str) -> UsageStats:
        """Stats for a provider (zeroed if it has made no requests)."""
        return self._stats.get(provider, UsageStats())

    def reset(self, provider: Optional[str] = None) -> None:
        if provider is None:
            self._stats.clear()
        else:
            self._stats.pop(provider, None)
