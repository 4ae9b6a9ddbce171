"""
Asynchronous HTTP client with a request orchestration pipeline.

Config merging, request/response interceptors, retry with backoff and
in-flight deduplication are applied around a pluggable transport adapter.
"""
from .types import (
    HttpMethod,
    HTTP_METHODS,
    RequestConfig,
    RetryOptions,
    CacheOptions,
    FetchResponse,
    Adapter,
    Serializer,
)
from .config import (
    DEFAULTS,
    MERGE_STRATEGIES,
    DefaultSerializer,
    default_validate_status,
    merge_config,
    merge_headers,
    normalize_headers,
)
from .errors import (
    FetchError,
    ConfigurationError,
    InterceptorContractError,
    TransportError,
    ResponseStatusError,
    CancellationError,
    is_cancel,
    is_fetch_error,
)
from .cancellation import CancelSource, CancelToken, create_cancel_source
from .interceptors import (
    InterceptorEntry,
    InterceptorManager,
    InterceptorOptions,
    CacheManager,
    SecurityPolicy,
    install_cache_interceptors,
    install_security_interceptors,
)
from .core import (
    FetchClient,
    Dispatcher,
    build_full_path,
    build_url,
    resolve_request,
)
from .adapters import (
    HttpxAdapter,
    MockAdapter,
    MockMatcher,
    MockResponse,
    create_mock_adapter,
)
from .factory import (
    create_client,
    get_default_deduplicator,
    dispose_default_deduplicator,
)

__all__ = [
    # Types
    "HttpMethod",
    "HTTP_METHODS",
    "RequestConfig",
    "RetryOptions",
    "CacheOptions",
    "FetchResponse",
    "Adapter",
    "Serializer",
    # Config
    "DEFAULTS",
    "MERGE_STRATEGIES",
    "DefaultSerializer",
    "default_validate_status",
    "merge_config",
    "merge_headers",
    "normalize_headers",
    # Errors
    "FetchError",
    "ConfigurationError",
    "InterceptorContractError",
    "TransportError",
    "ResponseStatusError",
    "CancellationError",
    "is_cancel",
    "is_fetch_error",
    # Cancellation
    "CancelSource",
    "CancelToken",
    "create_cancel_source",
    # Interceptors
    "InterceptorEntry",
    "InterceptorManager",
    "InterceptorOptions",
    "CacheManager",
    "SecurityPolicy",
    "install_cache_interceptors",
    "install_security_interceptors",
    # Client
    "FetchClient",
    "Dispatcher",
    "build_full_path",
    "build_url",
    "resolve_request",
    # Adapters
    "HttpxAdapter",
    "MockAdapter",
    "MockMatcher",
    "MockResponse",
    "create_mock_adapter",
    # Factory
    "create_client",
    "get_default_deduplicator",
    "dispose_default_deduplicator",
]

__version__ = "1.0.0"
