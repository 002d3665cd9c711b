"""Provider configuration models.

A ProviderConfig describes everything the gateway needs to call one
external HTTP service: where it lives, how to authenticate, how hard it may
be hit and how long its responses stay fresh.
"""

from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from apigateway.core.config import settings


class AuthType(str, Enum):
    """Supported authentication strategies."""

    NONE = "none"
    BEARER = "bearer"
    API_KEY = "api_key"
    BASIC = "basic"


class AuthConfig(BaseModel):
    """Authentication descriptor for a provider.

    Attributes:
        type: Authentication strategy
        token: Bearer token
        key: API key value
        header: Header carrying the API key (default X-API-Key)
        location: Send the API key as a "header" or a "query" parameter
        username: Basic auth username
        password: Basic auth password
    """

    model_config = ConfigDict(extra="ignore")

    type: AuthType = AuthType.NONE
    token: Optional[str] = None
    key: Optional[str] = None
    header: str = "X-API-Key"
    location: str = "header"
    username: Optional[str] = None
    password: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        # Accept "api-key" as well as "api_key"
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_")
        return v

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: str) -> str:
        if v not in ("header", "query"):
            raise ValueError("location must be 'header' or 'query'")
        return v


class RateLimitPolicy(BaseModel):
    """Maximum number of requests allowed per fixed window of `period` seconds."""

    model_config = ConfigDict(extra="ignore")

    requests: int = Field(ge=1)
    period: float

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("rate limit period must be positive")
        return v


def _default_rate_limit() -> RateLimitPolicy:
    return RateLimitPolicy(
        requests=settings.default_rate_limit_requests,
        period=settings.default_rate_limit_period,
    )


class ProviderConfig(BaseModel):
    """Configuration for a single registered provider.

    Omitted fields fall back to the gateway settings. Passing
    ``rate_limit=None`` explicitly disables client-side rate limiting.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    base_url: str
    auth: AuthConfig = Field(
        default_factory=AuthConfig,
        validation_alias=AliasChoices("auth", "authentication"),
    )
    rate_limit: Optional[RateLimitPolicy] = Field(default_factory=_default_rate_limit)
    timeout: float = Field(default_factory=lambda: settings.default_timeout, gt=0)
    retries: int = Field(default_factory=lambda: settings.default_retries, ge=0)
    headers: Dict[str, str] = Field(default_factory=dict)
    endpoints: Dict[str, str] = Field(default_factory=dict)
    cache_ttl: float = Field(default_factory=lambda: settings.default_cache_ttl, ge=0)
    active: bool = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an absolute http(s) URL."""
        try:
            parts = urlsplit(v.strip())
        except ValueError as e:
            raise ValueError(f"Invalid base_url format: {v!r}") from e
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Invalid base_url format: {v!r}")
        return v.strip()

    def resolve_endpoint(self, endpoint: str) -> str:
        """Map a named endpoint alias to its path, or return the endpoint unchanged."""
        return self.endpoints.get(endpoint, endpoint)
