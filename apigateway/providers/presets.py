"""Preset configurations for well-known third-party providers.

These are static data, loaded from settings at call time so credentials can
come from the environment (e.g. APIGATEWAY_STRIPE_SECRET_KEY). Registering
them is opt-in via ApiGateway.register_presets().
"""

from typing import Dict, Iterable, Optional

from apigateway.core.config import Settings, settings as default_settings
from apigateway.core.logging import get_logger
from apigateway.providers.config import ProviderConfig

logger = get_logger(__name__)


def preset_configs(settings: Optional[Settings] = None) -> Dict[str, ProviderConfig]:
    """Build the preset provider table.

    Args:
        settings: Settings to read credentials from (defaults to the global instance)

    Returns:
        Mapping of provider name to ProviderConfig, in registration order
    """
    s = settings or default_settings
    return {
        "unsplash": ProviderConfig(
            base_url="https://api.unsplash.com",
            auth={
                "type": "api_key",
                "header": "Authorization",
                "key": f"Client-ID {s.unsplash_access_key}" if s.unsplash_access_key else None,
            },
            rate_limit={"requests": 50, "period": 3600},
            cache_ttl=3600,
            endpoints={"search_photos": "/search/photos"},
        ),
        "youtube": ProviderConfig(
            base_url="https://www.googleapis.com/youtube/v3",
            auth={"type": "api_key", "header": "key", "location": "query", "key": s.youtube_api_key or None},
            rate_limit={"requests": 100, "period": 3600},
            cache_ttl=1800,
            endpoints={"search": "/search"},
        ),
        "google_fonts": ProviderConfig(
            base_url="https://www.googleapis.com/webfonts/v1",
            auth={"type": "api_key", "header": "key", "location": "query", "key": s.google_fonts_api_key or None},
            rate_limit={"requests": 1000, "period": 3600},
            cache_ttl=86400,
            endpoints={"webfonts": "/webfonts"},
        ),
        "stripe": ProviderConfig(
            base_url="https://api.stripe.com/v1",
            auth={"type": "bearer", "token": s.stripe_secret_key or None},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            rate_limit={"requests": 100, "period": 60},
            # Payment responses must never be served from cache
            cache_ttl=0,
            endpoints={"payment_intents": "/payment_intents"},
        ),
        "mailchimp": ProviderConfig(
            base_url=f"https://{s.mailchimp_datacenter}.api.mailchimp.com/3.0",
            auth={
                "type": "api_key",
                "header": "Authorization",
                "key": f"apikey {s.mailchimp_api_key}" if s.mailchimp_api_key else None,
            },
            rate_limit={"requests": 10, "period": 60},
            cache_ttl=300,
        ),
        "twitter": ProviderConfig(
            base_url="https://api.twitter.com/1.1",
            auth={"type": "bearer", "token": s.twitter_bearer_token or None},
            rate_limit={"requests": 15, "period": 900},
            cache_ttl=300,
            endpoints={"user_timeline": "/statuses/user_timeline"},
        ),
        "instagram": ProviderConfig(
            base_url="https://graph.instagram.com",
            auth={"type": "bearer", "token": s.instagram_access_token or None},
            rate_limit={"requests": 200, "period": 3600},
            cache_ttl=600,
        ),
    }


PRESET_NAMES = (
    "unsplash",
    "youtube",
    "google_fonts",
    "stripe",
    "mailchimp",
    "twitter",
    "instagram",
)


def select_presets(
    names: Optional[Iterable[str]] = None, settings: Optional[Settings] = None
) -> Dict[str, ProviderConfig]:
    """Return the requested subset of presets (all of them when names is None).

    Raises:
        KeyError: If a requested name is not a known preset
    """
    table = preset_configs(settings)
    if names is None:
        return table
    selected = {}
    for name in names:
        if name not in table:
            raise KeyError(f"Unknown preset provider: {name}")
        selected[name] = table[name]
    return selected
