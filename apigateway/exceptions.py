"""Custom exceptions for the outbound API gateway.

Every error raised by the gateway derives from ApiError, so host
applications can catch the whole family with a single except clause.
"""

from typing import Any, Dict, Optional


class ApiError(Exception):
    """Base class for gateway errors.

    Also raised directly for unregistered or disabled providers, unsupported
    HTTP methods, non-timeout transport failures, exhausted timeout retries
    and any non-2xx status without a more specific mapping.
    """

    def __init__(
        self,
        message: str = "API error",
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.provider = provider
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dict for API responses or logs."""
        data: Dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
        }
        if self.status_code is not None:
            data["status_code"] = self.status_code
        if self.provider is not None:
            data["provider"] = self.provider
        return data


class ConfigError(ApiError):
    """Raised when a provider registration is malformed or incomplete."""

    def __init__(self, message: str = "Invalid provider configuration", provider: Optional[str] = None):
        super().__init__(message, provider=provider)


class AuthenticationError(ApiError):
    """Raised when the remote service rejects our credentials (HTTP 401)."""

    def __init__(self, message: str = "Authentication failed", provider: Optional[str] = None):
        super().__init__(message, status_code=401, provider=provider)


class RateLimitError(ApiError):
    """Raised when a request is refused for rate limiting reasons.

    ``source`` is ``"local"`` when the gateway's own limiter refused the call
    before any network request, or ``"remote"`` when the service answered 429.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider: Optional[str] = None,
        source: str = "local",
        retry_after: Optional[float] = None,
    ):
        self.source = source
        self.retry_after = retry_after
        super().__init__(
            message,
            status_code=429 if source == "remote" else None,
            provider=provider,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["source"] = self.source
        if self.retry_after is not None:
            data["retry_after"] = self.retry_after
        return data


class ServiceUnavailableError(ApiError):
    """Raised when the remote service answers with a 5xx status."""

    def __init__(
        self,
        message: str = "Service unavailable",
        status_code: int = 503,
        provider: Optional[str] = None,
    ):
        super().__init__(message, status_code=status_code, provider=provider)
