"""
Factory functions for creating fetch clients.
"""
import logging
from typing import Any, Mapping, Optional, Union

import httpx

from fetch_dedup import DedupConfig, RequestDeduplicator

from .adapters.httpx_adapter import HttpxAdapter
from .core.client import FetchClient
from .types import Adapter

logger = logging.getLogger("fetch_client.factory")

_default_deduplicator: Optional[RequestDeduplicator] = None


def get_default_deduplicator() -> RequestDeduplicator:
    """
    Return the process-wide deduplicator, creating it on first use.

    Owned by the application: call ``dispose_default_deduplicator`` on
    shutdown. Tests should construct their own RequestDeduplicator.
    """
    global _default_deduplicator
    if _default_deduplicator is None or _default_deduplicator.is_disposed:
        _default_deduplicator = RequestDeduplicator()
        logger.debug("created default deduplicator")
    return _default_deduplicator


def dispose_default_deduplicator() -> None:
    """Dispose the process-wide deduplicator, if one was created."""
    global _default_deduplicator
    if _default_deduplicator is not None:
        _default_deduplicator.dispose()
        _default_deduplicator = None


def create_client(
    config: Optional[Mapping[str, Any]] = None,
    *,
    adapter: Optional[Adapter] = None,
    httpx_client: Optional[httpx.AsyncClient] = None,
    dedupe: Union[bool, DedupConfig, RequestDeduplicator] = False,
    verbose: bool = False,
) -> FetchClient:
    """
    Create a fetch client with the given configuration.

    Args:
        config: Client defaults (base_url, headers, timeout, retry, ...).
        adapter: Adapter to use. Defaults to an HttpxAdapter.
        httpx_client: Pre-configured httpx.AsyncClient for the default adapter.
        dedupe: True for the process-wide deduplicator, a DedupConfig for a
            private one, or a ready RequestDeduplicator.
        verbose: Trace requests and responses with rich (default adapter only).

    Returns:
        FetchClient instance.

    Example:
        client = create_client(
            {"base_url": "https://api.example.com", "retry": {"attempts": 3}},
            dedupe=True,
        )
        async with client:
            response = await client.get("/users")
    """
    owns_adapter = adapter is None
    if adapter is None:
        adapter = HttpxAdapter(httpx_client, verbose=verbose)

    if isinstance(dedupe, RequestDeduplicator):
        deduplicator: Optional[RequestDeduplicator] = dedupe
    elif isinstance(dedupe, DedupConfig):
        deduplicator = RequestDeduplicator(dedupe)
    elif dedupe:
        deduplicator = get_default_deduplicator()
    else:
        deduplicator = None

    return FetchClient(
        config,
        adapter=adapter,
        deduplicator=deduplicator,
        owns_adapter=owns_adapter,
    )
