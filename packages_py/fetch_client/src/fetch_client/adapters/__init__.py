"""
Transport adapters for fetch_client.
"""
from .httpx_adapter import HttpxAdapter
from .mock_adapter import (
    MockAdapter,
    MockHandler,
    MockMatcher,
    MockResponse,
    create_mock_adapter,
)

__all__ = [
    "HttpxAdapter",
    "MockAdapter",
    "MockHandler",
    "MockMatcher",
    "MockResponse",
    "create_mock_adapter",
]
