"""Shared fixtures for gateway tests."""

import pytest
import pytest_asyncio

from apigateway.services.gateway import ApiGateway

BASE_URL = "https://api.example.com/v1"


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def base_url():
    return BASE_URL


@pytest.fixture
def provider_config():
    """A minimal but complete provider registration."""
    return {
        "base_url": BASE_URL,
        "auth": {"type": "bearer", "token": "test-token"},
        "rate_limit": {"requests": 5, "period": 60},
        "timeout": 5,
        "retries": 2,
        "cache_ttl": 300,
    }


@pytest_asyncio.fixture
async def gateway(clock):
    """Gateway with a fake clock and zero backoff so retries do not sleep."""
    async with ApiGateway(clock=clock, backoff_unit=0, configure_logging=False) as gw:
        yield gw
