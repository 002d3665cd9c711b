"""Gateway façade for outbound provider calls.

One ApiGateway instance owns the provider registry, the rate limiter, the
response cache, the usage tracker and the HTTP client. Every call goes
through the same sequence:

    resolve provider -> rate limit -> cache lookup -> execute (with retry)
    -> cache store + usage update

Any error raised before the last step propagates unchanged and nothing is
recorded. Nothing is recorded either when the provider was unregistered or
replaced while its call was in flight.
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import httpx

from apigateway.core.config import Settings, settings as default_settings
from apigateway.core.http_client import create_http_client
from apigateway.core.logging import get_log_context, get_logger, setup_logging
from apigateway.exceptions import ApiError
from apigateway.providers.config import ProviderConfig
from apigateway.providers.presets import select_presets
from apigateway.providers.registry import ProviderRegistry
from apigateway.services.executor import RequestExecutor, build_url
from apigateway.services.rate_limiter import RateLimiter
from apigateway.services.response_cache import ResponseCache
from apigateway.services.usage import UsageTracker

logger = get_logger(__name__)

_MISS = object()


class ApiGateway:
    """Uniform entry point for calling registered third-party HTTP APIs.

    The gateway creates (and later closes) its own httpx.AsyncClient unless
    one is passed in, in which case the caller keeps ownership of it.

    Usage:
        async with ApiGateway() as gateway:
            gateway.register("unsplash", {"base_url": "https://api.unsplash.com"})
            photos = await gateway.get("unsplash", "/search/photos", {"query": "sea"})
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        *,
        clock: Callable[[], float] = time.time,
        backoff_unit: Optional[float] = None,
        configure_logging: Optional[bool] = None,
    ):
        """Initialize the gateway.

        Args:
            http_client: Optional shared HTTP client for connection pooling
            clock: Time source for rate limit windows, cache TTLs and usage timestamps
            backoff_unit: Seconds per retry backoff unit (defaults to settings)
            configure_logging: Set up the apigateway loggers if no gateway has
                yet (defaults to settings.configure_logging)
        """
        if configure_logging is None:
            configure_logging = default_settings.configure_logging
        if configure_logging:
            setup_logging()

        self._owns_client = http_client is None
        self._http_client = http_client if http_client is not None else create_http_client()
        self._clock = clock

        self.registry = ProviderRegistry()
        self.rate_limiter = RateLimiter(clock=clock)
        self.cache = ResponseCache(clock=clock)
        self.usage = UsageTracker()
        self.executor = RequestExecutor(self._http_client, backoff_unit=backoff_unit)

    async def __aenter__(self) -> "ApiGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if the gateway created it."""
        if self._owns_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    # Registration

    def register(
        self, name: str, config: Union[ProviderConfig, Mapping[str, Any]]
    ) -> ProviderConfig:
        """Register or fully replace a provider configuration.

        Raises:
            ConfigError: If the configuration is invalid
        """
        return self.registry.register(name, config)

    def register_presets(
        self, names: Optional[Iterable[str]] = None, settings: Optional[Settings] = None
    ) -> List[str]:
        """Register the built-in presets (all of them when names is None).

        Returns:
            Names of the registered providers
        """
        registered = []
        for name, config in select_presets(names, settings).items():
            self.registry.register(name, config)
            registered.append(name)
        return registered

    async def unregister(self, name: str) -> None:
        """Remove a provider together with its cache entries, window and stats.

        Idempotent: unregistering an unknown name is a no-op.
        """
        self.registry.unregister(name)
        await self.cache.clear(name)
        self.rate_limiter.reset(name)
        self.usage.reset(name)

    def get_provider(self, name: str) -> Optional[ProviderConfig]:
        return self.registry.get(name)

    def list_providers(self) -> List[str]:
        return self.registry.list()

    def active_providers(self) -> List[str]:
        return self.registry.active()

    # Calls

    async def request(
        self,
        provider: str,
        endpoint: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Make one call to a registered provider.

        Args:
            provider: Registered provider name
            endpoint: Endpoint path, or a named alias from the provider config
            method: HTTP method
            params: Query parameters
            body: Request body
            headers: Per-call headers (override provider defaults)
            timeout: Overrides the provider timeout for this call

        Returns:
            Parsed response body (decoded JSON or raw text)

        Raises:
            ApiError: Provider unknown or disabled, transport failure, other HTTP errors
            RateLimitError: Local window full, or remote 429
            AuthenticationError: Remote 401
            ServiceUnavailableError: Remote 5xx
        """
        config = self.registry.get(provider)
        if config is None:
            raise ApiError(f"Provider '{provider}' not registered", provider=provider)
        if not config.active:
            raise ApiError(f"Provider '{provider}' is disabled", provider=provider)

        method = method.upper()
        path = config.resolve_endpoint(endpoint)
        log_context = get_log_context(provider=provider, method=method, endpoint=path)

        await self.rate_limiter.check_and_increment(provider, config.rate_limit)

        fingerprint = self.cache.fingerprint(provider, path, method, params, body)
        cached = await self.cache.get(provider, fingerprint, config.cache_ttl, default=_MISS)
        if cached is not _MISS:
            logger.debug(f"Cache hit for key: {fingerprint[:16]}...", extra=log_context)
            return cached

        try:
            response = await self.executor.execute(
                config,
                method,
                build_url(config.base_url, path),
                headers=headers,
                params=params,
                body=body,
                timeout=timeout,
                provider=provider,
            )
        except ApiError as e:
            logger.warning(
                f"{method} {path} on '{provider}' failed: {type(e).__name__}: {e}",
                extra={**log_context, "status_code": e.status_code},
            )
            raise

        if self.registry.get(provider) is not config:
            # Config changed while in flight; storing would undo an unregister purge
            logger.info(
                f"{method} {path} on '{provider}' finished after the provider was "
                f"unregistered or replaced, not recording",
                extra=log_context,
            )
            return response

        await self.cache.put(provider, fingerprint, response, config.cache_ttl)
        self.usage.record(provider, at=datetime.fromtimestamp(self._clock(), tz=timezone.utc))
        logger.info(f"{method} {path} on '{provider}' succeeded", extra=log_context)
        return response

    async def get(
        self,
        provider: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ) -> Any:
        return await self.request(provider, endpoint, "GET", params=params, **options)

    async def post(
        self, provider: str, endpoint: str, data: Any = None, **options: Any
    ) -> Any:
        return await self.request(provider, endpoint, "POST", body=data, **options)

    async def put(
        self, provider: str, endpoint: str, data: Any = None, **options: Any
    ) -> Any:
        return await self.request(provider, endpoint, "PUT", body=data, **options)

    async def delete(self, provider: str, endpoint: str, **options: Any) -> Any:
        return await self.request(provider, endpoint, "DELETE", **options)

    # Observability

    def stats(self, provider: str) -> Optional[Dict[str, Any]]:
        """Usage, policy and cache figures for one provider, or None if unknown."""
        config = self.registry.get(provider)
        if config is None:
            return None
        usage = self.usage.get(provider)
        return {
            "requests_made": usage.requests_made,
            "last_request": usage.last_request,
            "rate_limit_policy": config.rate_limit.model_dump() if config.rate_limit else None,
            "cache_entry_count": self.cache.entry_count(provider),
        }

    def all_stats(self) -> Dict[str, Dict[str, Any]]:
        return {name: self.stats(name) for name in self.registry.list()}

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    # Cache control

    async def clear_cache(self, provider: Optional[str] = None) -> int:
        """Drop cached responses for one provider, or for all of them."""
        removed = await self.cache.clear(provider)
        logger.info(
            f"Cleared {removed} cache entries",
            extra=get_log_context(provider=provider),
        )
        return removed

    async def sweep_cache(self) -> int:
        """Remove expired entries now instead of waiting for lazy expiry."""
        ttls = {name: self.registry.get(name).cache_ttl for name in self.registry.list()}
        return await self.cache.cleanup_expired(ttls)
