"""Pytest configuration and fixtures for fetch_dedup tests."""
import pytest
from typing import Generator

from fetch_dedup import MemoryPendingStore, RequestDeduplicator, create_memory_pending_store


@pytest.fixture
def memory_pending_store() -> MemoryPendingStore:
    """Create a memory pending-request store for testing."""
    return create_memory_pending_store()


@pytest.fixture
def deduplicator(
    memory_pending_store: MemoryPendingStore,
) -> Generator[RequestDeduplicator, None, None]:
    """Create a deduplicator for testing."""
    dedup = RequestDeduplicator(store=memory_pending_store)
    yield dedup
    dedup.dispose()


@pytest.fixture
def get_config() -> dict:
    """A plain GET request config."""
    return {"method": "GET", "url": "https://api.example.com/users"}
