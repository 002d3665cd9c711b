"""Outbound API gateway.

Calls registered third-party HTTP providers through one request path that
adds authentication, enforces per-provider rate limits, retries timeouts
with exponential backoff and caches successful responses.
"""

from apigateway._version import __version__
from apigateway.exceptions import (
    ApiError,
    AuthenticationError,
    ConfigError,
    RateLimitError,
    ServiceUnavailableError,
)
from apigateway.providers import AuthConfig, AuthType, ProviderConfig, RateLimitPolicy
from apigateway.services import ApiGateway

__all__ = [
    "__version__",
    "ApiGateway",
    "ProviderConfig",
    "AuthConfig",
    "AuthType",
    "RateLimitPolicy",
    "ApiError",
    "AuthenticationError",
    "ConfigError",
    "RateLimitError",
    "ServiceUnavailableError",
]
