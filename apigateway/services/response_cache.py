"""Response cache for successful provider calls.

Entries are scoped by provider and keyed by a request fingerprint. Expiry is
TTL based and lazy: a stale entry is only removed when it is looked up, or
when cleanup_expired() sweeps the cache. There is no size-based eviction, so
the cache grows with the number of distinct requests made within their TTLs.
"""

import asyncio
import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional


@dataclass
class CacheEntry:
    """A parsed response and the time it was stored."""

    response: Any
    stored_at: float

    def is_expired(self, ttl: float, now: float) -> bool:
        return now - self.stored_at >= ttl


def _canonical(value: Any) -> Any:
    # Order of mapping keys must not change the fingerprint
    if isinstance(value, Mapping):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class ResponseCache:
    """In-memory TTL cache of parsed provider responses.

    Note: This cache is not distributed and data is lost when the
    process exits.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialize the cache.

        Args:
            clock: Time source returning seconds (injectable for tests)
        """
        self._clock = clock
        self._data: Dict[str, Dict[str, CacheEntry]] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def fingerprint(
        provider: str,
        endpoint: str,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> str:
        """Hash one logical request.

        Args:
            provider: Provider name
            endpoint: Endpoint path
            method: HTTP method (case-insensitive)
            params: Query parameters
            body: Request body

        Returns:
            Hex SHA-256 digest of the canonical JSON form of the request
        """
        key_content = json.dumps(
            {
                "provider": provider,
                "endpoint": endpoint,
                "method": method.upper(),
                "params": _canonical(params),
                "body": _canonical(body),
            },
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=str,
        )
        return hashlib.sha256(key_content.encode()).hexdigest()

    async def get(
        self, provider: str, fingerprint: str, ttl: float, default: Any = None
    ) -> Any:
        """Retrieve a cached response.

        Args:
            provider: Provider name
            fingerprint: Request fingerprint
            ttl: The provider's current TTL in seconds; 0 disables caching
            default: Returned on a miss. Pass a sentinel to tell a cached
                None (a JSON null body) apart from a miss.

        Returns:
            The cached response, or default if not found or expired.
        """
        if ttl <= 0:
            return default
        async with self._lock:
            entries = self._data.get(provider)
            if not entries:
                return default
            entry = entries.get(fingerprint)
            if entry is None:
                return default
            if entry.is_expired(ttl, self._clock()):
                del entries[fingerprint]
                if not entries:
                    del self._data[provider]
                return default
            return entry.response

    async def put(self, provider: str, fingerprint: str, response: Any, ttl: float) -> None:
        """Store a response, overwriting any existing entry.

        A ttl of 0 (or less) makes this a no-op.
        """
        if ttl <= 0:
            return
        async with self._lock:
            self._data.setdefault(provider, {})[fingerprint] = CacheEntry(
                response=response, stored_at=self._clock()
            )

    async def clear(self, provider: Optional[str] = None) -> int:
        """Clear one provider's entries, or every entry.

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            if provider is None:
                removed = sum(len(entries) for entries in self._data.values())
                self._data.clear()
                return removed
            return len(self._data.pop(provider, {}))

    async def cleanup_expired(self, ttls: Mapping[str, float]) -> int:
        """Remove every entry older than its provider's TTL.

        Providers missing from ``ttls`` are dropped entirely, since nothing
        can read their entries any more.

        Returns:
            Number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            removed = 0
            for provider in list(self._data):
                entries = self._data[provider]
                ttl = ttls.get(provider)
                if ttl is None or ttl <= 0:
                    removed += len(entries)
                    del self._data[provider]
                    continue
                expired = [fp for fp, entry in entries.items() if entry.is_expired(ttl, now)]
                for fp in expired:
                    del entries[fp]
                removed += len(expired)
                if not entries:
                    del self._data[provider]
            return removed

    def entry_count(self, provider: str) -> int:
        return len(self._data.get(provider, {}))

    def stats(self) -> Dict[str, Any]:
        """Total entries, number of providers with entries, approximate size in MB."""
        total_size = sum(
            len(json.dumps(
                {"response": entry.response, "stored_at": entry.stored_at},
                default=str,
            ).encode())
            for entries in self._data.values()
            for entry in entries.values()
        )
        return {
            "total_entries": sum(len(entries) for entries in self._data.values()),
            "providers_cached": len(self._data),
            "cache_size_mb": round(total_size / (1024.0 * 1024.0), 2),
        }
