"""HTTP client construction for outbound provider calls.

The gateway owns one httpx.AsyncClient for connection pooling across all
registered providers. Per-provider timeouts are passed per request, so the
client's own timeout only bounds connection setup and pool acquisition.
"""

import httpx

from apigateway.core.config import settings


def create_http_client(**kwargs) -> httpx.AsyncClient:
    """Create a new HTTP client with default settings.

    Note: The returned client should be closed when done:
        async with create_http_client() as client:
            # use client
            pass

    Args:
        **kwargs: Override default settings. Can include:
            - timeout: Single timeout value (overrides the default timeout)
            - connect_timeout: Connection timeout
            - max_connections: Maximum connections
            - max_keepalive_connections: Maximum keepalive connections
            - keepalive_expiry: Keepalive expiration time
            - transport: Custom transport (useful for testing)

    Returns:
        A new httpx.AsyncClient instance.
    """
    timeout_override = kwargs.get("timeout")
    if timeout_override is not None:
        timeout = httpx.Timeout(timeout_override)
    else:
        timeout = httpx.Timeout(
            settings.default_timeout,
            connect=kwargs.get("connect_timeout", settings.httpx_connect_timeout),
        )

    config = {
        "timeout": timeout,
        "limits": httpx.Limits(
            max_connections=kwargs.get(
                "max_connections", settings.httpx_max_connections
            ),
            max_keepalive_connections=kwargs.get(
                "max_keepalive_connections", settings.httpx_max_keepalive_connections
            ),
            keepalive_expiry=kwargs.get(
                "keepalive_expiry", settings.httpx_keepalive_expiry
            ),
        ),
    }
    if kwargs.get("transport") is not None:
        config["transport"] = kwargs["transport"]
    return httpx.AsyncClient(**config)
