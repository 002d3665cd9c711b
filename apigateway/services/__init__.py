"""Gateway services: rate limiting, caching, execution and the façade."""

from apigateway.services.executor import (
    RequestExecutor,
    build_headers,
    build_url,
    parse_response,
    raise_for_status,
)
from apigateway.services.gateway import ApiGateway
from apigateway.services.rate_limiter import RateLimiter, RateLimitResult, RateLimitState
from apigateway.services.response_cache import CacheEntry, ResponseCache
from apigateway.services.usage import UsageStats, UsageTracker

__all__ = [
    # Facade
    "ApiGateway",
    # Executor
    "RequestExecutor",
    "build_headers",
    "build_url",
    "parse_response",
    "raise_for_status",
    # Rate limiting
    "RateLimiter",
    "RateLimitResult",
    "RateLimitState",
    # Cache
    "CacheEntry",
    "ResponseCache",
    # Usage
    "UsageStats",
    "UsageTracker",
]
