"""Provider configuration package.

This package provides:
- Provider configuration models (ProviderConfig, AuthConfig, RateLimitPolicy)
- The provider registry (ProviderRegistry)
- Retry mechanism (RetryPolicy, with_retry)
- Preset configurations for well-known services
"""

from apigateway.providers.config import (
    AuthConfig,
    AuthType,
    ProviderConfig,
    RateLimitPolicy,
)
from apigateway.providers.presets import PRESET_NAMES, preset_configs, select_presets
from apigateway.providers.registry import ProviderRegistry
from apigateway.providers.retry import RetryPolicy, with_retry

__all__ = [
    # Config
    "AuthConfig",
    "AuthType",
    "ProviderConfig",
    "RateLimitPolicy",
    # Registry
    "ProviderRegistry",
    # Presets
    "PRESET_NAMES",
    "preset_configs",
    "select_presets",
    # Retry
    "RetryPolicy",
    "with_retry",
]
