"""Request execution for provider calls.

The executor turns one logical call into an HTTP request, retries it on
timeouts with exponential backoff, maps the response status onto the
gateway's error types and parses the body.
"""

import base64
import time
from typing import Any, Dict, Mapping, MutableMapping, Optional

import httpx

from apigateway.core.config import settings
from apigateway.core.logging import get_logger
from apigateway.exceptions import (
    ApiError,
    AuthenticationError,
    RateLimitError,
    ServiceUnavailableError,
)
from apigateway.providers.config import AuthType, ProviderConfig
from apigateway.providers.retry import RetryPolicy, with_retry

logger = get_logger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")
DEFAULT_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _find_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key in headers:
        if key.lower() == lowered:
            return key
    return None


def _set_header(headers: MutableMapping[str, str], name: str, value: str) -> None:
    existing = _find_header(headers, name)
    if existing is not None:
        del headers[existing]
    headers[name] = value


def _setdefault_header(headers: MutableMapping[str, str], name: str, value: str) -> None:
    if _find_header(headers, name) is None:
        headers[name] = value


def _flatten_form(data: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flatten nested mappings into bracketed form keys (a[b]=c)."""
    flat: Dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten_form(value, name))
        elif isinstance(value, bool):
            flat[name] = "true" if value else "false"
        elif value is not None:
            flat[name] = str(value)
    return flat


def build_url(base_url: str, endpoint: str) -> str:
    """Join a provider base URL and an endpoint path.

    Args:
        base_url: Provider base URL, with or without trailing slash
        endpoint: Endpoint path, with or without leading slash

    Returns:
        Full URL
    """
    base_url = base_url.rstrip("/")
    if not endpoint:
        return base_url
    endpoint = endpoint if endpoint.startswith("/") else f"/{endpoint}"
    return f"{base_url}{endpoint}"


def build_headers(
    config: ProviderConfig, overrides: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Build the HTTP headers for one request.

    Provider default headers come first, per-call headers override them,
    then the authentication header is applied. Content-Type and User-Agent
    are filled in when neither source set them.

    Args:
        config: Provider configuration
        overrides: Per-call headers

    Returns:
        Dictionary of HTTP headers
    """
    headers: Dict[str, str] = {}
    for source in (config.headers, overrides or {}):
        for name, value in source.items():
            _set_header(headers, name, value)

    auth = config.auth
    if auth.type == AuthType.BEARER and auth.token:
        _set_header(headers, "Authorization", f"Bearer {auth.token}")
    elif auth.type == AuthType.API_KEY and auth.key and auth.location == "header":
        _set_header(headers, auth.header, auth.key)
    elif auth.type == AuthType.BASIC and auth.username is not None:
        credentials = base64.b64encode(
            f"{auth.username}:{auth.password or ''}".encode()
        ).decode("ascii")
        _set_header(headers, "Authorization", f"Basic {credentials}")

    _setdefault_header(headers, "Content-Type", DEFAULT_CONTENT_TYPE)
    _setdefault_header(headers, "User-Agent", settings.user_agent)
    return headers


def build_params(
    config: ProviderConfig, params: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """Merge call parameters with a query-string API key, if configured."""
    query = dict(params or {})
    auth = config.auth
    if auth.type == AuthType.API_KEY and auth.key and auth.location == "query":
        query[auth.header] = auth.key
    return query


def parse_response(response: httpx.Response) -> Any:
    """Parse a successful response body.

    JSON content types are decoded; if decoding fails the raw text is
    returned instead. Any other content type is returned as raw text.
    """
    content_type = response.headers.get("content-type", "")
    if "json" not in content_type.lower():
        return response.text
    try:
        return response.json()
    except ValueError:
        logger.debug(
            f"Response declared {content_type!r} but is not valid JSON, returning raw body"
        )
        return response.text


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def raise_for_status(
    response: httpx.Response, url: str, provider: Optional[str] = None
) -> None:
    """Map a non-2xx response onto the gateway's error types.

    Args:
        response: The final response
        url: The requested URL, whose host is named in error messages
        provider: Provider name carried on the error

    Raises:
        AuthenticationError: On 401
        RateLimitError: On 429
        ServiceUnavailableError: On 5xx
        ApiError: On any other non-2xx status
    """
    status = response.status_code
    if 200 <= status < 300:
        return

    host = httpx.URL(url).host
    if status == 401:
        raise AuthenticationError(f"Authentication failed for {host}", provider=provider)
    if status == 429:
        raise RateLimitError(
            f"Rate limit exceeded for {host}",
            provider=provider,
            source="remote",
            retry_after=_retry_after(response),
        )
    if 500 <= status < 600:
        raise ServiceUnavailableError(
            f"Service unavailable: {host}", status_code=status, provider=provider
        )
    raise ApiError(
        f"HTTP {status}: {response.reason_phrase}", status_code=status, provider=provider
    )


class RequestExecutor:
    """Sends provider requests through a shared httpx.AsyncClient.

    Only transport timeouts are retried. Other transport failures and every
    HTTP error status surface immediately.

    Usage:
        async with httpx.AsyncClient() as client:
            executor = RequestExecutor(client)
            data = await executor.execute(config, "GET", url, params={"q": "x"})
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        backoff_unit: Optional[float] = None,
        max_delay: Optional[float] = None,
    ):
        """Initialize the executor.

        Args:
            http_client: Client used for every request
            backoff_unit: Seconds per backoff unit (defaults to settings.retry_backoff_unit)
            max_delay: Optional cap on a single backoff sleep (defaults to settings.retry_max_delay)
        """
        self._http_client = http_client
        self.backoff_unit = settings.retry_backoff_unit if backoff_unit is None else backoff_unit
        self.max_delay = settings.retry_max_delay if max_delay is None else max_delay

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._http_client

    def retry_policy(self, config: ProviderConfig) -> RetryPolicy:
        return RetryPolicy(
            max_retries=config.retries,
            base_delay=self.backoff_unit,
            max_delay=self.max_delay,
        )

    def _encode_body(
        self, method: str, headers: Mapping[str, str], body: Any
    ) -> Dict[str, Any]:
        if body is None or method == "GET":
            return {}
        if isinstance(body, (str, bytes)):
            return {"content": body}
        content_type_key = _find_header(headers, "Content-Type")
        content_type = headers[content_type_key].lower() if content_type_key else ""
        if FORM_CONTENT_TYPE in content_type and isinstance(body, Mapping):
            return {"data": _flatten_form(body)}
        return {"json": body}

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return await self._http_client.request(method, url, **kwargs)

    async def execute(
        self,
        config: ProviderConfig,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        timeout: Optional[float] = None,
        provider: Optional[str] = None,
    ) -> Any:
        """Perform one logical HTTP call.

        Args:
            config: Provider configuration (auth, headers, retries, timeout)
            method: HTTP method (GET, POST, PUT or DELETE)
            url: Full request URL
            headers: Per-call headers
            params: Query parameters
            body: Request body for POST/PUT/DELETE
            timeout: Overrides config.timeout for this call
            provider: Provider name, for errors and logs

        Returns:
            Parsed response body (decoded JSON or raw text)

        Raises:
            ApiError: Unsupported method, transport failure or exhausted retries
            AuthenticationError: On HTTP 401
            RateLimitError: On HTTP 429
            ServiceUnavailableError: On HTTP 5xx
        """
        method = method.upper()
        if method not in SUPPORTED_METHODS:
            raise ApiError(f"Unsupported HTTP method: {method}", provider=provider)

        request_headers = build_headers(config, headers)
        request_kwargs: Dict[str, Any] = {
            "headers": request_headers,
            "timeout": timeout if timeout is not None else config.timeout,
        }
        query = build_params(config, params)
        if query:
            request_kwargs["params"] = query
        request_kwargs.update(self._encode_body(method, request_headers, body))

        send = with_retry(self.retry_policy(config))(self._send)
        started = time.perf_counter()
        try:
            response = await send(method, url, **request_kwargs)
        except httpx.TimeoutException as e:
            raise ApiError(
                f"Request timeout after {config.retries} retries: {e}", provider=provider
            ) from e
        except httpx.HTTPError as e:
            raise ApiError(f"Request failed: {e}", provider=provider) from e

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.debug(
            f"{method} {url} -> {response.status_code}",
            extra={
                "provider": provider,
                "method": method,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        raise_for_status(response, url, provider)
        return parse_response(response)
