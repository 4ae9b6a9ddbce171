"""
Type definitions for fetch_client.
"""
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Literal,
    Mapping,
    Protocol,
    TypedDict,
    Union,
)
from dataclasses import dataclass, field

if TYPE_CHECKING:
    from .cancellation import CancelToken


# HTTP methods
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

# Backoff shapes accepted in RetryOptions
BackoffName = Literal["exponential", "linear", "constant"]

# How the adapter should decode a response body
ResponseType = Literal["json", "text", "bytes"]

HeaderValue = Union[str, int, float, List[str], None]


class RetryOptions(TypedDict, total=False):
    """Retry policy carried on a request config."""

    attempts: int
    delay: float
    max_delay: float
    backoff: BackoffName
    retry_condition: Callable[[BaseException], bool]


class CacheOptions(TypedDict, total=False):
    """Cache policy carried on a request config."""

    enabled: bool
    ttl: float
    key: str
    storage: str
    exclude_headers: List[str]


class RequestConfig(TypedDict, total=False):
    """
    Partial or merged request configuration.

    A missing key means "not set"; an explicit ``None`` is a value.
    """

    method: str
    url: str
    base_url: str
    headers: Dict[str, HeaderValue]
    params: Dict[str, Any]
    data: Any
    timeout: float
    retry: RetryOptions
    cache: CacheOptions
    security: Dict[str, Any]
    dedupe: bool
    adapter: "Adapter"
    cancel_token: "CancelToken"
    validate_status: Callable[[int], bool]
    response_type: ResponseType


@dataclass(frozen=True)
class FetchResponse:
    """Response produced by an adapter or synthesised by an interceptor."""

    data: Any
    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    config: Mapping[str, Any] = field(default_factory=dict)
    request: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Adapter(Protocol):
    """Transport boundary: performs the actual network I/O."""

    def __call__(self, config: RequestConfig) -> Awaitable[FetchResponse]:
        ...


class Serializer(Protocol):
    """Serializer protocol for custom JSON handling."""

    def serialize(self, data: Any) -> str:
        """Serialize data to string."""
        ...

    def deserialize(self, text: str) -> Any:
        """Deserialize string to data."""
        ...


FulfilledHandler = Callable[[Any], Any]
RejectedHandler = Callable[[BaseException], Any]
RunWhen = Callable[[Mapping[str, Any]], bool]

