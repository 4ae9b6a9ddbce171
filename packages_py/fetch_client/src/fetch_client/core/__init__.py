"""
Core modules for fetch_client.
"""
from .client import FetchClient, Interceptors
from .dispatcher import (
    Dispatcher,
    RETRYABLE_ERRORS,
    validate_request_value,
    validate_response_value,
)
from .request_builder import (
    build_full_path,
    build_url,
    combine_urls,
    is_absolute_url,
    normalize_method,
    resolve_request,
)

__all__ = [
    "FetchClient",
    "Interceptors",
    "Dispatcher",
    "RETRYABLE_ERRORS",
    "validate_request_value",
    "validate_response_value",
    "build_full_path",
    "build_url",
    "combine_urls",
    "is_absolute_url",
    "normalize_method",
    "resolve_request",
]
