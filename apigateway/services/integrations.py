"""Helpers for the preset providers.

Each helper is a single call through the gateway with the parameters the
provider expects. The provider must have been registered, usually through
ApiGateway.register_presets().
"""

from typing import Any, Dict, Optional

from apigateway.services.gateway import ApiGateway


# Content APIs

async def fetch_unsplash_images(gateway: ApiGateway, query: str, per_page: int = 10) -> Any:
    return await gateway.get("unsplash", "search_photos", {
        "query": query,
        "per_page": per_page,
        "orientation": "landscape",
    })


async def fetch_youtube_videos(gateway: ApiGateway, query: str, max_results: int = 10) -> Any:
    return await gateway.get("youtube", "search", {
        "part": "snippet",
        "q": query,
        "maxResults": max_results,
        "type": "video",
    })


async def fetch_google_fonts(gateway: ApiGateway, sort: str = "popularity") -> Any:
    return await gateway.get("google_fonts", "webfonts", {"sort": sort})


# E-commerce APIs

async def create_stripe_payment_intent(
    gateway: ApiGateway, amount: int, currency: str = "usd"
) -> Any:
    """Create a payment intent. Amount is in the currency's smallest unit."""
    return await gateway.post("stripe", "payment_intents", {
        "amount": amount,
        "currency": currency,
        "automatic_payment_methods": {"enabled": True},
    })


# Marketing APIs

async def add_mailchimp_subscriber(
    gateway: ApiGateway,
    list_id: str,
    email: str,
    merge_fields: Optional[Dict[str, Any]] = None,
) -> Any:
    return await gateway.post("mailchimp", f"/lists/{list_id}/members", {
        "email_address": email,
        "status": "subscribed",
        "merge_fields": merge_fields or {},
    })


# Social media APIs

async def fetch_twitter_timeline(gateway: ApiGateway, username: str, count: int = 10) -> Any:
    return await gateway.get("twitter", "user_timeline", {
        "screen_name": username,
        "count": count,
        "include_rts": "false",
    })


async def fetch_instagram_media(gateway: ApiGateway, user_id: str, count: int = 10) -> Any:
    return await gateway.get("instagram", f"/{user_id}/media", {
        "fields": "id,caption,media_type,media_url,thumbnail_url,timestamp",
        "limit": count,
    })
