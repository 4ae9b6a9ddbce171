"""
Retry strategy with constant, linear or exponential backoff, jitter and
Retry-After support.
"""
from .types import (
    RetryPolicy,
    RetryResult,
    RetryEvent,
    RetryEventListener,
    BackoffStrategy,
    NETWORK_ERROR_CODES,
)
from .config import (
    DEFAULT_RETRY_POLICY,
    resolve_policy,
    compute_delay,
    should_retry,
    is_retryable_error,
    parse_retry_after,
    async_sleep,
)
from .executor import (
    RetryExecutor,
    create_retry_executor,
    retry,
)


__all__ = [
    # Types
    "RetryPolicy",
    "RetryResult",
    "RetryEvent",
    "RetryEventListener",
    "BackoffStrategy",
    "NETWORK_ERROR_CODES",
    # Config
    "DEFAULT_RETRY_POLICY",
    "resolve_policy",
    "compute_delay",
    "should_retry",
    "is_retryable_error",
    "parse_retry_after",
    "async_sleep",
    # Executor
    "RetryExecutor",
    "create_retry_executor",
    "retry",
]


__version__ = "1.0.0"
