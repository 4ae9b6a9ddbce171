"""
Shared fixtures for fetch_client tests.
"""
import pytest
from unittest.mock import AsyncMock

import httpx

from fetch_dedup import RequestDeduplicator
from fetch_client import CancelSource, FetchClient, FetchResponse, MockAdapter

BASE_URL = "https://api.example.com"


@pytest.fixture
def mock_adapter():
    """Fresh MockAdapter with no handlers."""
    return MockAdapter()


@pytest.fixture
def client(mock_adapter):
    """FetchClient against api.example.com backed by the mock adapter."""
    return FetchClient({"base_url": BASE_URL}, adapter=mock_adapter)


@pytest.fixture
def deduplicator():
    """Private deduplicator, disposed after the test."""
    dedup = RequestDeduplicator()
    yield dedup
    dedup.dispose()


@pytest.fixture
def dedupe_client(mock_adapter, deduplicator):
    """FetchClient with in-flight deduplication enabled."""
    return FetchClient(
        {"base_url": BASE_URL},
        adapter=mock_adapter,
        deduplicator=deduplicator,
    )


@pytest.fixture
def cancel_source():
    """Fresh CancelSource."""
    return CancelSource()


@pytest.fixture
def sample_config():
    """Resolved GET config as the adapter would receive it."""
    return {
        "method": "GET",
        "url": f"{BASE_URL}/users",
        "headers": {"accept": "application/json"},
    }


@pytest.fixture
def sample_response(sample_config):
    """Successful FetchResponse for sample_config."""
    return FetchResponse(
        data={"id": 1},
        status=200,
        status_text="OK",
        headers={"content-type": "application/json"},
        config=sample_config,
    )


@pytest.fixture
def mock_httpx_async_client():
    """Mock httpx.AsyncClient for testing."""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.aclose = AsyncMock()
    return client
