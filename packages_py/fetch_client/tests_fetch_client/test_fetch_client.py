"""
Tests for core/client.py
Logic testing: Decision/Branch, State Transition, Path coverage
"""
import pytest
from unittest.mock import AsyncMock

from fetch_client import FetchClient, MockResponse


class TestDefaults:
    """Tests for client defaults."""

    def test_library_defaults_applied(self, client):
        assert client.defaults["method"] == "GET"
        assert client.defaults["base_url"] == "https://api.example.com"
        assert client.defaults["headers"]["accept"] == "application/json, text/plain, */*"

    def test_config_headers_merged_over_defaults(self):
        client = FetchClient({"headers": {"Accept": "text/csv", "X-Team": "core"}})
        assert client.defaults["headers"]["accept"] == "text/csv"
        assert client.defaults["headers"]["x-team"] == "core"
        assert "user-agent" in client.defaults["headers"]

    @pytest.mark.asyncio
    async def test_call_config_does_not_leak_into_defaults(self, client, mock_adapter):
        mock_adapter.on_get("/users", MockResponse(200))

        await client.get("/users", {"headers": {"x-once": "1"}, "timeout": 10})

        assert "x-once" not in client.defaults["headers"]
        assert client.defaults["timeout"] == 0


class TestVerbs:
    """Tests for the HTTP verb helpers."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb,method", [
        ("get", "GET"),
        ("delete", "DELETE"),
        ("head", "HEAD"),
        ("options", "OPTIONS"),
    ])
    async def test_bodyless_verbs(self, client, mock_adapter, verb, method):
        mock_adapter.on(method, "/items/1", MockResponse(200))

        response = await getattr(client, verb)("/items/1")

        assert response.status == 200
        assert mock_adapter.last_request["method"] == method

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb,method", [
        ("post", "POST"),
        ("put", "PUT"),
        ("patch", "PATCH"),
    ])
    async def test_body_verbs(self, client, mock_adapter, verb, method):
        mock_adapter.on(method, "/items", MockResponse(201), data={"name": "x"})

        response = await getattr(client, verb)("/items", {"name": "x"})

        assert response.status == 201
        assert mock_adapter.last_request["data"] == {"name": "x"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verb", ["post", "put", "patch"])
    async def test_body_from_config_kept_without_data_argument(self, client, mock_adapter, verb):
        mock_adapter.on_any(MockResponse(201))

        await getattr(client, verb)("/items", config={"data": {"name": "x"}})

        assert mock_adapter.last_request["data"] == {"name": "x"}

    @pytest.mark.asyncio
    async def test_data_argument_wins_over_config_data(self, client, mock_adapter):
        mock_adapter.on_any(MockResponse(201))

        await client.post("/items", {"name": "arg"}, {"data": {"name": "config"}})

        assert mock_adapter.last_request["data"] == {"name": "arg"}

    @pytest.mark.asyncio
    async def test_verb_wins_over_config_method(self, client, mock_adapter):
        mock_adapter.on_get("/items", MockResponse(200))

        await client.get("/items", {"method": "POST"})

        assert mock_adapter.last_request["method"] == "GET"

    @pytest.mark.asyncio
    async def test_request_with_url_string(self, client, mock_adapter):
        mock_adapter.on_get("/users", MockResponse(200))

        await client.request("/users", {"params": {"q": "a"}})

        assert mock_adapter.last_request["params"] == {"q": "a"}

    @pytest.mark.asyncio
    async def test_request_with_config(self, client, mock_adapter):
        mock_adapter.on_delete("/users/1", MockResponse(204))

        response = await client.request({"url": "/users/1", "method": "delete"})

        assert response.status == 204


class TestGetUri:
    """Tests for get_uri."""

    def test_joins_base_and_params(self, client):
        uri = client.get_uri({"url": "/search", "params": {"q": "books", "page": 2}})
        assert uri == "https://api.example.com/search?q=books&page=2"

    def test_absolute_url(self, client):
        assert client.get_uri({"url": "https://other.test/x"}) == "https://other.test/x"


class TestCreate:
    """Tests for child clients."""

    def test_child_inherits_and_overrides_defaults(self, client):
        client.defaults["headers"]["x-parent"] = "1"

        child = client.create({"headers": {"x-child": "2"}, "timeout": 5000})

        assert child.defaults["base_url"] == "https://api.example.com"
        assert child.defaults["headers"]["x-parent"] == "1"
        assert child.defaults["headers"]["x-child"] == "2"
        assert child.defaults["timeout"] == 5000
        assert "x-child" not in client.defaults["headers"]

    def test_child_starts_with_empty_chains(self, client):
        client.interceptors.request.use(lambda config: config)
        client.interceptors.response.use(lambda response: response)

        child = client.create()

        assert len(child.interceptors.request) == 0
        assert len(child.interceptors.response) == 0

    def test_child_shares_collaborators(self, dedupe_client):
        child = dedupe_client.create()

        assert child.adapter is dedupe_client.adapter
        assert child.deduplicator is dedupe_client.deduplicator
        assert child.retry_executor is dedupe_client.retry_executor

    @pytest.mark.asyncio
    async def test_child_interceptors_do_not_affect_parent(self, client, mock_adapter):
        mock_adapter.on_get("/users", MockResponse(200))
        child = client.create()
        child.interceptors.request.use(
            lambda config: {**config, "headers": {**config["headers"], "x-child": "1"}}
        )

        await client.get("/users")

        assert "x-child" not in mock_adapter.last_request["headers"]


class TestLifecycle:
    """Tests for close and the async context manager."""

    @pytest.mark.asyncio
    async def test_closed_client_rejects_requests(self, client):
        await client.close()

        assert client.is_closed is True
        with pytest.raises(RuntimeError, match="closed"):
            await client.get("/users")

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, client):
        await client.close()
        await client.close()
        assert client.is_closed is True

    @pytest.mark.asyncio
    async def test_owned_adapter_is_closed(self):
        adapter = AsyncMock()
        client = FetchClient(adapter=adapter, owns_adapter=True)

        async with client:
            pass

        adapter.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_borrowed_adapter_left_open(self):
        adapter = AsyncMock()
        client = FetchClient(adapter=adapter)

        await client.close()

        adapter.aclose.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_manager_returns_client(self, mock_adapter):
        async with FetchClient({"base_url": "https://api.example.com"}, adapter=mock_adapter) as client:
            mock_adapter.on_get("/ping", MockResponse(200, "pong"))
            response = await client.get("/ping")

        assert response.data == "pong"
        assert client.is_closed is True
