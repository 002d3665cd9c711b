"""Registry of named provider configurations."""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from apigateway.core.logging import get_logger
from apigateway.exceptions import ConfigError
from apigateway.providers.config import ProviderConfig

logger = get_logger(__name__)

REQUIRED_FIELDS = ("base_url",)


class ProviderRegistry:
    """Holds provider configurations keyed by name.

    Registering a name again replaces the whole record (no partial merge).
    Names keep the position of their first registration.

    Usage:
        registry = ProviderRegistry()
        registry.register("unsplash", {"base_url": "https://api.unsplash.com"})
        config = registry.get("unsplash")
    """

    def __init__(self) -> None:
        self._configs: Dict[str, ProviderConfig] = {}

    def register(
        self, name: str, config: Union[ProviderConfig, Mapping[str, Any]]
    ) -> ProviderConfig:
        """Validate and store a provider configuration.

        Args:
            name: Unique provider name
            config: A ProviderConfig or a mapping with the same fields

        Returns:
            The stored ProviderConfig

        Raises:
            ConfigError: If required fields are missing or invalid
        """
        if not name:
            raise ConfigError("Provider name must not be empty")

        if isinstance(config, ProviderConfig):
            validated = config
        else:
            validated = self._validate(name, config)

        replaced = name in self._configs
        self._configs[name] = validated
        logger.info(
            f"{'Re-registered' if replaced else 'Registered'} provider '{name}'",
            extra={"provider": name},
        )
        return validated

    def _validate(self, name: str, config: Mapping[str, Any]) -> ProviderConfig:
        missing = [f for f in REQUIRED_FIELDS if config.get(f) is None]
        if missing:
            raise ConfigError(
                f"Missing required provider config fields: {', '.join(missing)}",
                provider=name,
            )
        try:
            return ProviderConfig.model_validate(dict(config))
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigError(
                f"Invalid configuration for provider '{name}': {details}",
                provider=name,
            ) from e

    def unregister(self, name: str) -> bool:
        """Remove a provider. Returns True if it was registered."""
        removed = self._configs.pop(name, None) is not None
        if removed:
            logger.info(f"Unregistered provider '{name}'", extra={"provider": name})
        return removed

    def get(self, name: str) -> Optional[ProviderConfig]:
        return self._configs.get(name)

    def list(self) -> List[str]:
        """Provider names in registration order."""
        return list(self._configs)

    def active(self) -> List[str]:
        """Names of providers whose active flag is set."""
        return [name for name, config in self._configs.items() if config.active]

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    def __len__(self) -> int:
        return len(self._configs)
