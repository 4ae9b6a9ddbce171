"""
Cache interceptors.

The cache itself is an external collaborator; these interceptors only
consult it. A cache failure is logged and never fails the request.
"""
import dataclasses
import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Union

from ..types import CacheOptions, FetchResponse, RequestConfig
from .manager import InterceptorManager

logger = logging.getLogger("fetch_client.interceptors.cache")

CACHEABLE_METHODS = ("GET", "HEAD")
INVALIDATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")
CACHE_STATUS_HEADER = "x-cache"


class CacheManager(Protocol):
    """Response cache. Methods may be plain or async."""

    def get(
        self, config: RequestConfig, policy: CacheOptions
    ) -> Union[Optional[FetchResponse], Awaitable[Optional[FetchResponse]]]:
        ...

    def set(
        self, config: RequestConfig, response: FetchResponse, policy: CacheOptions
    ) -> Union[None, Awaitable[None]]:
        ...

    def delete(
        self, config: RequestConfig, policy: CacheOptions
    ) -> Union[None, Awaitable[None]]:
        ...


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _policy(config: Mapping[str, Any]) -> Optional[CacheOptions]:
    policy = config.get("cache")
    if isinstance(policy, Mapping) and policy.get("enabled"):
        return policy  # type: ignore[return-value]
    return None


def _method(config: Mapping[str, Any]) -> str:
    return str(config.get("method") or "GET").upper()


def create_cache_request_interceptor(
    cache: CacheManager,
) -> Callable[[RequestConfig], Awaitable[Union[RequestConfig, FetchResponse]]]:
    """Return a cached response instead of the config on a cache hit."""

    async def cache_request_interceptor(
        config: RequestConfig,
    ) -> Union[RequestConfig, FetchResponse]:
        policy = _policy(config)
        if policy is None or _method(config) not in CACHEABLE_METHODS:
            return config

        try:
            cached = await _resolve(cache.get(config, policy))
        except Exception as e:
            logger.warning(f"cache read failed for {config.get('url')}: {e}")
            return config

        if cached is None:
            return config

        logger.debug(f"cache hit for {_method(config)} {config.get('url')}")
        return dataclasses.replace(
            cached,
            config=config,
            headers={**cached.headers, CACHE_STATUS_HEADER: "HIT"},
        )

    return cache_request_interceptor


def create_cache_response_interceptor(
    cache: CacheManager,
) -> Callable[[FetchResponse], Awaitable[FetchResponse]]:
    """Store successful responses of cacheable requests."""

    async def cache_response_interceptor(response: FetchResponse) -> FetchResponse:
        config = response.config
        policy = _policy(config)
        if policy is None or _method(config) not in CACHEABLE_METHODS:
            return response
        if not response.ok or response.headers.get(CACHE_STATUS_HEADER) == "HIT":
            return response

        try:
            await _resolve(cache.set(config, response, policy))  # type: ignore[arg-type]
        except Exception as e:
            logger.warning(f"cache write failed for {config.get('url')}: {e}")
        return response

    return cache_response_interceptor


def create_cache_invalidation_interceptor(
    cache: CacheManager,
) -> Callable[[RequestConfig], Awaitable[RequestConfig]]:
    """Drop the cached GET entry for a URL before it is mutated."""

    async def cache_invalidation_interceptor(config: RequestConfig) -> RequestConfig:
        policy = _policy(config)
        if policy is None or _method(config) not in INVALIDATING_METHODS:
            return config

        try:
            await _resolve(cache.delete({**config, "method": "GET"}, policy))
        except Exception as e:
            logger.warning(f"cache invalidation failed for {config.get('url')}: {e}")
        return config

    return cache_invalidation_interceptor


def install_cache_interceptors(
    request_chain: InterceptorManager,
    response_chain: InterceptorManager,
    cache: CacheManager,
) -> tuple:
    """
    Register the cache interceptors on a client's chains.

    Returns:
        (request ids, response id) for later ejection
    """
    request_ids = (
        request_chain.use(create_cache_invalidation_interceptor(cache)),
        request_chain.use(create_cache_request_interceptor(cache)),
    )
    response_id = response_chain.use(create_cache_response_interceptor(cache))
    return request_ids, response_id
