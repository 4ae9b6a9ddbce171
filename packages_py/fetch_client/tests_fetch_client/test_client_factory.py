"""
Tests for factory.py
Logic testing: Decision/Branch coverage
"""
import pytest

from fetch_dedup import DedupConfig, RequestDeduplicator
from fetch_client import (
    HttpxAdapter,
    create_client,
    dispose_default_deduplicator,
    get_default_deduplicator,
)


@pytest.fixture(autouse=True)
def reset_default_deduplicator():
    yield
    dispose_default_deduplicator()


class TestCreateClient:
    """Tests for create_client."""

    @pytest.mark.asyncio
    async def test_default_adapter_is_owned(self, mock_httpx_async_client):
        client = create_client({"base_url": "https://api.example.com"}, httpx_client=mock_httpx_async_client)

        assert isinstance(client.adapter, HttpxAdapter)
        assert client.adapter.client is mock_httpx_async_client
        assert client.defaults["base_url"] == "https://api.example.com"

        await client.close()

        # The adapter is closed, but it borrowed the httpx client
        mock_httpx_async_client.aclose.assert_not_awaited()

    def test_custom_adapter(self, mock_adapter):
        client = create_client(adapter=mock_adapter)
        assert client.adapter is mock_adapter

    # Decision: dedupe variants
    def test_dedupe_disabled_by_default(self, mock_adapter):
        assert create_client(adapter=mock_adapter).deduplicator is None

    def test_dedupe_true_uses_shared_instance(self, mock_adapter):
        first = create_client(adapter=mock_adapter, dedupe=True)
        second = create_client(adapter=mock_adapter, dedupe=True)
        assert first.deduplicator is second.deduplicator
        assert first.deduplicator is get_default_deduplicator()

    def test_dedupe_config_gets_private_instance(self, mock_adapter):
        client = create_client(adapter=mock_adapter, dedupe=DedupConfig(max_entries=10))
        assert client.deduplicator is not get_default_deduplicator()
        assert client.deduplicator.get_config().max_entries == 10

    def test_dedupe_instance_used_as_is(self, mock_adapter, deduplicator):
        assert create_client(adapter=mock_adapter, dedupe=deduplicator).deduplicator is deduplicator


class TestDefaultDeduplicator:
    """Tests for the process-wide deduplicator lifecycle."""

    def test_lazy_singleton(self):
        assert get_default_deduplicator() is get_default_deduplicator()

    def test_recreated_after_dispose(self):
        first = get_default_deduplicator()
        dispose_default_deduplicator()
        second = get_default_deduplicator()
        assert first.is_disposed
        assert second is not first
        assert isinstance(second, RequestDeduplicator)

    def test_dispose_without_instance(self):
        dispose_default_deduplicator()
        dispose_default_deduplicator()
