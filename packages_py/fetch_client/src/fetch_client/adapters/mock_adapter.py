"""
In-memory adapter for tests.

Example:
    mock = MockAdapter()
    mock.on_get("/users", MockResponse(200, [{"id": 1}]))
    mock.network_error("/flaky", times=2)

    client = FetchClient({"base_url": "https://api.test"}, adapter=mock)
"""
import asyncio
import inspect
import json
import logging
import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Mapping, Optional, Pattern, Sequence, Union

from ..errors import ERR_NETWORK, ETIMEDOUT, FetchError, TransportError
from ..types import FetchResponse, RequestConfig

logger = logging.getLogger("fetch_client.mock_adapter")

ERR_MOCK_NOT_FOUND = "ERR_MOCK_NOT_FOUND"

_UNSET: Any = object()


@dataclass
class MockResponse:
    """Canned response. ``delay`` is in milliseconds."""

    status: int = 200
    data: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    status_text: Optional[str] = None
    delay: Optional[float] = None


@dataclass
class MockMatcher:
    """Request matcher. Unset fields match anything."""

    method: Union[str, Sequence[str], None] = None
    url: Union[str, Pattern[str], None] = None
    params: Optional[Mapping[str, Any]] = None
    data: Any = _UNSET
    headers: Optional[Mapping[str, str]] = None


MockReply = Union[
    MockResponse,
    FetchResponse,
    BaseException,
    Callable[[RequestConfig], Any],
]


@dataclass
class MockHandler:
    matcher: MockMatcher
    reply: MockReply
    times: Optional[int] = None
    """Remaining uses; None means unlimited."""


def _stable(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _status_text(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


class MockAdapter:
    """Adapter answering from a table of matchers, first match wins."""

    def __init__(self) -> None:
        self._handlers: List[MockHandler] = []
        self._history: List[RequestConfig] = []
        self._default_delay = 0.0

    def add_handler(self, handler: MockHandler) -> "MockAdapter":
        self._handlers.append(handler)
        return self

    def on(
        self,
        method: Union[str, Sequence[str], None],
        url: Union[str, Pattern[str], None],
        reply: MockReply,
        *,
        data: Any = _UNSET,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        times: Optional[int] = None,
    ) -> "MockAdapter":
        """Register a reply for requests matching method and url."""
        matcher = MockMatcher(method=method, url=url, params=params, data=data, headers=headers)
        return self.add_handler(MockHandler(matcher=matcher, reply=reply, times=times))

    def on_get(self, url, reply: MockReply, **kwargs: Any) -> "MockAdapter":
        return self.on("GET", url, reply, **kwargs)

    def on_post(self, url, reply: MockReply, **kwargs: Any) -> "MockAdapter":
        return self.on("POST", url, reply, **kwargs)

    def on_put(self, url, reply: MockReply, **kwargs: Any) -> "MockAdapter":
        return self.on("PUT", url, reply, **kwargs)

    def on_patch(self, url, reply: MockReply, **kwargs: Any) -> "MockAdapter":
        return self.on("PATCH", url, reply, **kwargs)

    def on_delete(self, url, reply: MockReply, **kwargs: Any) -> "MockAdapter":
        return self.on("DELETE", url, reply, **kwargs)

    def on_head(self, url, reply: MockReply, **kwargs: Any) -> "MockAdapter":
        return self.on("HEAD", url, reply, **kwargs)

    def on_options(self, url, reply: MockReply, **kwargs: Any) -> "MockAdapter":
        return self.on("OPTIONS", url, reply, **kwargs)

    def on_any(self, reply: MockReply, matcher: Optional[MockMatcher] = None, times: Optional[int] = None) -> "MockAdapter":
        return self.add_handler(MockHandler(matcher=matcher or MockMatcher(), reply=reply, times=times))

    def network_error(self, url=None, method=None, times: Optional[int] = None) -> "MockAdapter":
        """Fail matching requests with a network error."""

        def fail(config: RequestConfig) -> Any:
            raise TransportError("Network Error", code=ERR_NETWORK, config=config)

        return self.on(method, url, fail, times=times)

    def timeout(self, url=None, method=None, times: Optional[int] = None) -> "MockAdapter":
        """Fail matching requests with a timeout."""

        def fail(config: RequestConfig) -> Any:
            raise TransportError(
                f"timeout of {config.get('timeout', 0)}ms exceeded",
                code=ETIMEDOUT,
                config=config,
            )

        return self.on(method, url, fail, times=times)

    def set_default_delay(self, delay_ms: float) -> "MockAdapter":
        self._default_delay = delay_ms
        return self

    def reset(self) -> "MockAdapter":
        """Clear handlers and history."""
        self._handlers = []
        self._history = []
        return self

    def reset_handlers(self) -> "MockAdapter":
        self._handlers = []
        return self

    def reset_history(self) -> "MockAdapter":
        self._history = []
        return self

    @property
    def history(self) -> List[RequestConfig]:
        return list(self._history)

    @property
    def last_request(self) -> Optional[RequestConfig]:
        return self._history[-1] if self._history else None

    def _matches(self, config: Mapping[str, Any], matcher: MockMatcher) -> bool:
        if matcher.method is not None:
            methods = [matcher.method] if isinstance(matcher.method, str) else list(matcher.method)
            if str(config.get("method") or "GET").upper() not in [m.upper() for m in methods]:
                return False

        if matcher.url is not None:
            url = config.get("url") or ""
            if isinstance(matcher.url, re.Pattern):
                if not matcher.url.search(url):
                    return False
            elif url != matcher.url and not url.endswith(matcher.url):
                return False

        if matcher.data is not _UNSET and _stable(config.get("data")) != _stable(matcher.data):
            return False

        if matcher.params:
            params = config.get("params") or {}
            if any(params.get(k) != v for k, v in matcher.params.items()):
                return False

        if matcher.headers:
            headers = {k.lower(): v for k, v in (config.get("headers") or {}).items()}
            if any(headers.get(k.lower()) != v for k, v in matcher.headers.items()):
                return False

        return True

    def _take_handler(self, config: Mapping[str, Any]) -> Optional[MockHandler]:
        for index, handler in enumerate(self._handlers):
            if not self._matches(config, handler.matcher):
                continue
            if handler.times is not None:
                handler.times -= 1
                if handler.times <= 0:
                    del self._handlers[index]
            return handler
        return None

    async def __call__(self, config: RequestConfig) -> FetchResponse:
        self._history.append(config)

        handler = self._take_handler(config)
        if handler is None:
            raise FetchError(
                f"No mock handler found for {config.get('method', 'GET')} {config.get('url', '')}",
                code=ERR_MOCK_NOT_FOUND,
                config=config,
            )

        reply = handler.reply
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = reply(config)
            if inspect.isawaitable(reply):
                reply = await reply

        if isinstance(reply, FetchResponse):
            return reply

        delay = reply.delay if reply.delay is not None else self._default_delay
        if delay > 0:
            await asyncio.sleep(delay / 1000)

        logger.debug(f"MockAdapter: {config.get('method')} {config.get('url')} -> {reply.status}")
        return FetchResponse(
            data=reply.data,
            status=reply.status,
            status_text=reply.status_text if reply.status_text is not None else _status_text(reply.status),
            headers=dict(reply.headers),
            config=config,
        )


def create_mock_adapter() -> MockAdapter:
    """Create a mock adapter instance."""
    return MockAdapter()
