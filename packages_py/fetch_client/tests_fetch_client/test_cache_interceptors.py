"""
Tests for interceptors/cache.py
Logic testing: Decision/Branch, Path coverage
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from fetch_client import FetchResponse, MockResponse, install_cache_interceptors
from fetch_client.interceptors.cache import (
    CACHE_STATUS_HEADER,
    create_cache_invalidation_interceptor,
    create_cache_request_interceptor,
    create_cache_response_interceptor,
)

CACHED = {"cache": {"enabled": True, "ttl": 60}}


class InMemoryCache:
    """Dict-backed CacheManager keyed by method and url."""

    def __init__(self):
        self.entries = {}
        self.deleted = []

    def get(self, config, policy):
        return self.entries.get((config["method"], config["url"]))

    def set(self, config, response, policy):
        self.entries[(config["method"], config["url"])] = response

    def delete(self, config, policy):
        self.deleted.append((config["method"], config["url"]))
        self.entries.pop((config["method"], config["url"]), None)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def cached_client(client, cache):
    install_cache_interceptors(client.interceptors.request, client.interceptors.response, cache)
    return client


class TestCacheThroughClient:
    """Tests for the installed interceptors end to end."""

    @pytest.mark.asyncio
    async def test_second_get_served_from_cache(self, cached_client, mock_adapter):
        mock_adapter.on_get("/users", MockResponse(200, [{"id": 1}]))

        first = await cached_client.get("/users", CACHED)
        second = await cached_client.get("/users", CACHED)

        assert len(mock_adapter.history) == 1
        assert first.headers.get(CACHE_STATUS_HEADER) is None
        assert second.headers[CACHE_STATUS_HEADER] == "HIT"
        assert second.data == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_disabled_policy_bypasses_cache(self, cached_client, mock_adapter, cache):
        mock_adapter.on_get("/users", MockResponse(200))

        await cached_client.get("/users")
        await cached_client.get("/users")

        assert len(mock_adapter.history) == 2
        assert cache.entries == {}

    @pytest.mark.asyncio
    async def test_error_responses_not_stored(self, cached_client, mock_adapter, cache):
        mock_adapter.on_get("/users", MockResponse(200))

        await cached_client.get("/users", {**CACHED, "validate_status": None})
        assert len(cache.entries) == 1

        mock_adapter.reset().on_get("/other", MockResponse(500))
        await cached_client.get("/other", {**CACHED, "validate_status": None})
        assert len(cache.entries) == 1

    @pytest.mark.asyncio
    async def test_mutation_invalidates_get_entry(self, cached_client, mock_adapter, cache):
        mock_adapter.on_get("/users", MockResponse(200, "v1"))
        mock_adapter.on_post("/users", MockResponse(201))
        await cached_client.get("/users", CACHED)

        await cached_client.post("/users", {"name": "x"}, CACHED)

        assert ("GET", "https://api.example.com/users") in cache.deleted
        assert cache.entries == {}


class TestCacheInterceptorFailures:
    """Tests for cache failures never failing the request."""

    @pytest.mark.asyncio
    async def test_read_failure_falls_through(self, sample_config):
        cache = MagicMock()
        cache.get.side_effect = RuntimeError("cache down")
        interceptor = create_cache_request_interceptor(cache)
        config = {**sample_config, **CACHED}

        assert await interceptor(config) is config

    @pytest.mark.asyncio
    async def test_write_failure_keeps_response(self, sample_response):
        cache = MagicMock()
        cache.set = AsyncMock(side_effect=RuntimeError("disk full"))
        interceptor = create_cache_response_interceptor(cache)
        response = FetchResponse(
            data=sample_response.data,
            status=200,
            config={**sample_response.config, **CACHED},
        )

        assert await interceptor(response) is response
        cache.set.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalidation_failure_keeps_config(self):
        cache = MagicMock()
        cache.delete.side_effect = RuntimeError("gone")
        interceptor = create_cache_invalidation_interceptor(cache)
        config = {"method": "DELETE", "url": "https://api.test/x", **CACHED}

        assert await interceptor(config) is config

    @pytest.mark.asyncio
    async def test_async_cache_hit(self, sample_config, sample_response):
        cache = MagicMock()
        cache.get = AsyncMock(return_value=sample_response)
        interceptor = create_cache_request_interceptor(cache)

        result = await interceptor({**sample_config, **CACHED})

        assert result.data == sample_response.data
        assert result.headers[CACHE_STATUS_HEADER] == "HIT"
        assert result.config["cache"]["enabled"] is True

    @pytest.mark.asyncio
    async def test_non_cacheable_method_skipped(self):
        cache = MagicMock()
        interceptor = create_cache_request_interceptor(cache)

        await interceptor({"method": "POST", "url": "https://api.test/x", **CACHED})

        cache.get.assert_not_called()
