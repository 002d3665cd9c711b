"""Tests for request building, status mapping and retry in the executor."""

import json
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
import respx
from httpx import Response

from apigateway.exceptions import (
    ApiError,
    AuthenticationError,
    RateLimitError,
    ServiceUnavailableError,
)
from apigateway.providers.config import ProviderConfig
from apigateway.services.executor import (
    RequestExecutor,
    build_headers,
    build_params,
    build_url,
    parse_response,
    raise_for_status,
)

URL = "https://api.example.com/v1/items"


def make_config(**overrides):
    data = {"base_url": "https://api.example.com/v1", "retries": 2, "timeout": 5}
    data.update(overrides)
    return ProviderConfig.model_validate(data)


class TestBuildUrl:
    @pytest.mark.parametrize(
        "base_url, endpoint",
        [
            ("https://api.example.com/v1", "/items"),
            ("https://api.example.com/v1/", "/items"),
            ("https://api.example.com/v1", "items"),
        ],
    )
    def test_joins_with_single_slash(self, base_url, endpoint):
        assert build_url(base_url, endpoint) == URL


class TestBuildHeaders:
    """Header precedence and authentication."""

    def test_defaults_added(self):
        headers = build_headers(make_config())

        assert headers["Content-Type"] == "application/json"
        assert headers["User-Agent"].startswith("page-builder-gateway/")

    def test_bearer_token(self):
        headers = build_headers(make_config(auth={"type": "bearer", "token": "abc"}))
        assert headers["Authorization"] == "Bearer abc"

    def test_empty_bearer_token_sends_no_header(self):
        headers = build_headers(make_config(auth={"type": "bearer", "token": ""}))
        assert "Authorization" not in headers

    def test_api_key_default_header(self):
        headers = build_headers(make_config(auth={"type": "api_key", "key": "k1"}))
        assert headers["X-API-Key"] == "k1"

    def test_api_key_custom_header(self):
        headers = build_headers(
            make_config(auth={"type": "api_key", "key": "k1", "header": "X-Goog-Api-Key"})
        )
        assert headers["X-Goog-Api-Key"] == "k1"
        assert "X-API-Key" not in headers

    def test_api_key_in_query_not_in_headers(self):
        config = make_config(auth={"type": "api_key", "key": "k1", "header": "key", "location": "query"})

        assert "key" not in build_headers(config)
        assert build_params(config, {"q": "x"}) == {"q": "x", "key": "k1"}

    def test_basic_auth(self):
        headers = build_headers(
            make_config(auth={"type": "basic", "username": "user", "password": "pass"})
        )
        assert headers["Authorization"] == "Basic dXNlcjpwYXNz"

    def test_call_headers_override_provider_headers(self):
        config = make_config(headers={"Accept": "text/plain", "X-Team": "web"})

        headers = build_headers(config, {"accept": "application/xml"})

        assert headers["accept"] == "application/xml"
        assert "Accept" not in headers
        assert headers["X-Team"] == "web"

    def test_auth_applied_after_overrides(self):
        config = make_config(auth={"type": "bearer", "token": "abc"})

        headers = build_headers(config, {"Authorization": "Bearer other"})

        assert headers["Authorization"] == "Bearer abc"

    def test_provider_content_type_kept(self):
        headers = build_headers(make_config(headers={"content-type": "text/csv"}))
        assert headers["content-type"] == "text/csv"
        assert "Content-Type" not in headers


class TestRaiseForStatus:
    def test_success_passes(self):
        raise_for_status(Response(204), URL)

    def test_host_taken_from_url(self):
        """A response built without a request still maps cleanly."""
        with pytest.raises(ServiceUnavailableError, match="Service unavailable: api.example.com") as exc_info:
            raise_for_status(Response(502), URL, provider="example")

        assert exc_info.value.status_code == 502
        assert exc_info.value.provider == "example"

    def test_unmapped_status(self):
        with pytest.raises(ApiError, match="HTTP 409: Conflict"):
            raise_for_status(Response(409), URL)


class TestParseResponse:
    def test_json(self):
        response = Response(200, json={"ok": True})
        assert parse_response(response) == {"ok": True}

    def test_invalid_json_falls_back_to_text(self):
        response = Response(
            200, headers={"content-type": "application/json"}, content=b"not json"
        )
        assert parse_response(response) == "not json"

    def test_other_content_type_returns_text(self):
        assert parse_response(Response(200, text="hello")) == "hello"


class TestExecute:
    """End-to-end behaviour of RequestExecutor.execute against a mocked transport."""

    @pytest_asyncio.fixture
    async def executor(self):
        async with httpx.AsyncClient() as client:
            yield RequestExecutor(client, backoff_unit=0)

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_success(self, executor):
        route = respx.get(URL).mock(return_value=Response(200, json={"items": [1]}))

        result = await executor.execute(
            make_config(auth={"type": "bearer", "token": "abc"}), "GET", URL, params={"q": "x"}
        )

        assert result == {"items": [1]}
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer abc"
        assert request.url.params["q"] == "x"
        assert request.content == b""

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_sends_json(self, executor):
        route = respx.post(URL).mock(return_value=Response(201, json={"id": 7}))

        result = await executor.execute(make_config(), "post", URL, body={"name": "x"})

        assert result == {"id": 7}
        request = route.calls.last.request
        assert json.loads(request.content) == {"name": "x"}
        assert request.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_ignores_body(self, executor):
        route = respx.get(URL).mock(return_value=Response(200, json={}))

        await executor.execute(make_config(), "GET", URL, body={"ignored": True})

        assert route.calls.last.request.content == b""

    @pytest.mark.asyncio
    @respx.mock
    async def test_form_encoded_body(self, executor):
        route = respx.post(URL).mock(return_value=Response(200, json={}))
        config = make_config(headers={"Content-Type": "application/x-www-form-urlencoded"})

        await executor.execute(
            config,
            "POST",
            URL,
            body={"amount": 1000, "automatic_payment_methods": {"enabled": True}},
        )

        form = parse_qs(route.calls.last.request.content.decode())
        assert form == {"amount": ["1000"], "automatic_payment_methods[enabled]": ["true"]}

    @pytest.mark.asyncio
    @respx.mock
    async def test_delete(self, executor):
        route = respx.delete(URL).mock(return_value=Response(204))

        assert await executor.execute(make_config(), "DELETE", URL) == ""
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_unsupported_method(self, executor):
        with pytest.raises(ApiError, match="Unsupported HTTP method: PATCH"):
            await executor.execute(make_config(), "PATCH", URL)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, error_type, message",
        [
            (401, AuthenticationError, "Authentication failed for api.example.com"),
            (429, RateLimitError, "Rate limit exceeded for api.example.com"),
            (500, ServiceUnavailableError, "Service unavailable: api.example.com"),
            (503, ServiceUnavailableError, "Service unavailable: api.example.com"),
            (404, ApiError, "HTTP 404: Not Found"),
            (418, ApiError, "HTTP 418: I'm a teapot"),
        ],
    )
    @respx.mock
    async def test_status_mapping(self, executor, status, error_type, message):
        route = respx.get(URL).mock(return_value=Response(status))

        with pytest.raises(error_type) as exc_info:
            await executor.execute(make_config(), "GET", URL, provider="example")

        assert type(exc_info.value) is error_type
        assert str(exc_info.value) == message
        assert exc_info.value.status_code == status
        assert exc_info.value.provider == "example"
        # HTTP errors are never retried
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_remote_rate_limit_keeps_retry_after(self, executor):
        respx.get(URL).mock(return_value=Response(429, headers={"Retry-After": "30"}))

        with pytest.raises(RateLimitError) as exc_info:
            await executor.execute(make_config(), "GET", URL)

        assert exc_info.value.source == "remote"
        assert exc_info.value.retry_after == 30

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeouts", [1, 2])
    @respx.mock
    async def test_timeouts_within_budget_then_success(self, executor, timeouts):
        route = respx.get(URL).mock(
            side_effect=[httpx.ReadTimeout("slow")] * timeouts + [Response(200, json={"ok": 1})]
        )

        assert await executor.execute(make_config(retries=2), "GET", URL) == {"ok": 1}
        assert route.call_count == timeouts + 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeouts_exhaust_retries(self, executor):
        route = respx.get(URL).mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(ApiError, match="Request timeout after 2 retries") as exc_info:
            await executor.execute(make_config(retries=2), "GET", URL)

        assert type(exc_info.value) is ApiError
        assert route.call_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_zero_retries(self, executor):
        route = respx.get(URL).mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(ApiError, match="Request timeout after 0 retries"):
            await executor.execute(make_config(retries=0), "GET", URL)

        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error_not_retried(self, executor):
        route = respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(ApiError, match="Request failed"):
            await executor.execute(make_config(retries=3), "GET", URL)

        assert route.call_count == 1
