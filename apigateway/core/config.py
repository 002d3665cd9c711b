from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from apigateway._version import __version__


class Settings(BaseSettings):
    """Gateway settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    Per-provider values registered at runtime take precedence over the
    defaults defined here.
    """

    # Debug mode - logs request/response details
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | json
    # Configure the apigateway loggers when the first ApiGateway is built
    configure_logging: bool = True

    # Identifier sent as User-Agent unless the caller sets one
    user_agent: str = f"page-builder-gateway/{__version__}"

    # Provider defaults (applied when a registration omits the field)
    default_timeout: float = 30.0
    default_retries: int = 3
    default_cache_ttl: float = 300.0
    default_rate_limit_requests: int = 100
    default_rate_limit_period: float = 3600.0

    # Retry backoff: wait retry_backoff_unit * 2^attempt seconds
    retry_backoff_unit: float = 1.0
    retry_max_delay: Optional[float] = None  # None = uncapped

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Preset provider credentials
    unsplash_access_key: str = ""
    youtube_api_key: str = ""
    google_fonts_api_key: str = ""
    stripe_secret_key: str = ""
    mailchimp_api_key: str = ""
    mailchimp_datacenter: str = "us1"
    twitter_bearer_token: str = ""
    instagram_access_token: str = ""

    @field_validator("default_timeout", "default_rate_limit_period", "httpx_connect_timeout")
    @classmethod
    def validate_positive_duration(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("Durations must be positive")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return v

    @field_validator("default_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("default_retries must not be negative")
        return v

    @field_validator("default_cache_ttl", "retry_backoff_unit")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Value must not be negative")
        return v

    @field_validator("default_rate_limit_requests", "httpx_max_connections", "httpx_max_keepalive_connections")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        """Validate counts are at least 1."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    model_config = SettingsConfigDict(env_prefix="APIGATEWAY_", env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
