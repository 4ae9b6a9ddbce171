"""
Client facade.
"""
import logging
from typing import Any, Mapping, Optional, Union

from fetch_dedup import RequestDeduplicator
from fetch_retry import RetryExecutor

from ..config import DEFAULTS, merge_config
from ..interceptors.manager import InterceptorManager
from ..types import Adapter, FetchResponse, RequestConfig
from .dispatcher import Dispatcher
from .request_builder import build_full_path, build_url

logger = logging.getLogger("fetch_client.client")


class Interceptors:
    """The request and response chains of one client."""

    def __init__(self) -> None:
        self.request = InterceptorManager(reverse=True, name="request")
        self.response = InterceptorManager(reverse=False, name="response")


class FetchClient:
    """
    Asynchronous HTTP client.

    Holds merged ``defaults``, a pair of interceptor chains and an adapter.
    Every call merges its config over ``defaults`` and dispatches it.

    Example:
        client = FetchClient({"base_url": "https://api.example.com"}, adapter=HttpxAdapter())
        async with client:
            response = await client.get("/users", {"params": {"page": 1}})
    """

    def __init__(
        self,
        config: Optional[Mapping[str, Any]] = None,
        *,
        adapter: Optional[Adapter] = None,
        deduplicator: Optional[RequestDeduplicator] = None,
        retry_executor: Optional[RetryExecutor] = None,
        owns_adapter: bool = False,
    ) -> None:
        self.defaults: RequestConfig = merge_config(DEFAULTS, config)
        self.interceptors = Interceptors()
        self._adapter = adapter
        self._owns_adapter = owns_adapter
        self._deduplicator = deduplicator
        self._retry_executor = retry_executor or RetryExecutor(executor_id="fetch-client")
        self._dispatcher = Dispatcher(
            self.interceptors.request,
            self.interceptors.response,
            adapter=adapter,
            deduplicator=deduplicator,
            retry_executor=self._retry_executor,
        )
        self._closed = False

    @property
    def adapter(self) -> Optional[Adapter]:
        return self._adapter

    @property
    def deduplicator(self) -> Optional[RequestDeduplicator]:
        return self._deduplicator

    @property
    def retry_executor(self) -> RetryExecutor:
        return self._retry_executor

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def request(
        self,
        config_or_url: Union[str, Mapping[str, Any]],
        config: Optional[Mapping[str, Any]] = None,
    ) -> FetchResponse:
        """Make a generic HTTP request."""
        if self._closed:
            raise RuntimeError("Client has been closed")

        if isinstance(config_or_url, str):
            request_config = {**(config or {}), "url": config_or_url}
        else:
            request_config = merge_config(config_or_url, config)

        merged = merge_config(self.defaults, request_config)
        logger.debug(f"FetchClient.request: method={merged.get('method')}, url={merged.get('url')}")
        return await self._dispatcher.dispatch(merged)

    def _with(self, method: str, url: str, config: Optional[Mapping[str, Any]], data: Any = None) -> dict:
        merged = {**(config or {}), "method": method, "url": url}
        if data is not None:
            merged["data"] = data
        return merged

    async def get(self, url: str, config: Optional[Mapping[str, Any]] = None) -> FetchResponse:
        """GET request."""
        return await self.request(self._with("GET", url, config))

    async def delete(self, url: str, config: Optional[Mapping[str, Any]] = None) -> FetchResponse:
        """DELETE request."""
        return await self.request(self._with("DELETE", url, config))

    async def head(self, url: str, config: Optional[Mapping[str, Any]] = None) -> FetchResponse:
        """HEAD request."""
        return await self.request(self._with("HEAD", url, config))

    async def options(self, url: str, config: Optional[Mapping[str, Any]] = None) -> FetchResponse:
        """OPTIONS request."""
        return await self.request(self._with("OPTIONS", url, config))

    async def post(
        self, url: str, data: Any = None, config: Optional[Mapping[str, Any]] = None
    ) -> FetchResponse:
        """POST request."""
        return await self.request(self._with("POST", url, config, data=data))

    async def put(
        self, url: str, data: Any = None, config: Optional[Mapping[str, Any]] = None
    ) -> FetchResponse:
        """PUT request."""
        return await self.request(self._with("PUT", url, config, data=data))

    async def patch(
        self, url: str, data: Any = None, config: Optional[Mapping[str, Any]] = None
    ) -> FetchResponse:
        """PATCH request."""
        return await self.request(self._with("PATCH", url, config, data=data))

    def get_uri(self, config: Optional[Mapping[str, Any]] = None) -> str:
        """Build the full URL a config would be sent to, query string included."""
        merged = merge_config(self.defaults, config)
        full_path = build_full_path(merged.get("base_url"), merged.get("url") or "")
        return build_url(full_path, merged.get("params"))

    def create(self, config: Optional[Mapping[str, Any]] = None) -> "FetchClient":
        """
        Derive a child client.

        The child's defaults are this client's defaults merged with
        ``config``. It shares the adapter and deduplicator but starts with
        empty interceptor chains.
        """
        child = FetchClient(
            adapter=self._adapter,
            deduplicator=self._deduplicator,
            retry_executor=self._retry_executor,
        )
        child.defaults = merge_config(self.defaults, config)
        return child

    async def close(self) -> None:
        """Close the client and, if it created it, its adapter."""
        if self._closed:
            return
        self._closed = True
        if self._owns_adapter and hasattr(self._adapter, "aclose"):
            await self._adapter.aclose()

    async def __aenter__(self) -> "FetchClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()
