"""
Type definitions for fetch_retry
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar, Generic, Literal
from enum import Enum


T = TypeVar("T")


class BackoffStrategy(str, Enum):
    """Backoff strategy type"""
    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    CONSTANT = "constant"


@dataclass
class RetryPolicy:
    """Retry policy. Delays are in milliseconds."""

    attempts: int = 3
    """Maximum number of attempts, the first call included. Default: 3"""

    delay: float = 1000
    """Base delay between attempts (ms). Default: 1000"""

    max_delay: float = 30000
    """Upper bound for the computed backoff delay (ms). Default: 30000"""

    backoff: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    """Backoff strategy. Default: exponential"""

    retry_condition: Optional[Callable[[Exception], bool]] = None
    """Custom predicate; when set it decides alone whether to retry"""

    jitter_factor: float = 0.1
    """Random jitter added on top of the delay, as a fraction of it. Default: 0.1"""

    respect_retry_after: bool = True
    """Whether to honor the Retry-After response header. Default: True"""

    def __post_init__(self) -> None:
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")
        if self.max_delay < 0:
            raise ValueError("max_delay must be >= 0")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError("jitter_factor must be between 0 and 1")
        self.backoff = BackoffStrategy(self.backoff)


@dataclass
class RetryResult(Generic[T]):
    """Result of a retried operation"""

    result: T
    """The result of the operation"""

    attempts: int
    """Number of attempts made (1 if succeeded on first try)"""

    total_time_seconds: float
    """Total time spent including retries (seconds)"""

    delay_time_seconds: float
    """Time spent in backoff delays (seconds)"""

    @property
    def retries(self) -> int:
        return self.attempts - 1


# Event types
EventType = Literal[
    "attempt:start",
    "attempt:success",
    "attempt:fail",
    "retry:wait",
]


@dataclass
class RetryEvent:
    """Event emitted by the retry executor"""

    type: EventType
    """Event type"""

    attempt: int
    """Attempts made so far"""

    data: dict[str, Any] = field(default_factory=dict)
    """Event-specific data"""


# Event listener type
RetryEventListener = Callable[[RetryEvent], None]


# Error codes reported by adapters for network-level failures
NETWORK_ERROR_CODES = frozenset({"ERR_NETWORK", "ETIMEDOUT", "ECONNREFUSED", "ECONNRESET"})

# Rate limited responses are retried alongside 5xx
RATE_LIMITED_STATUS = 429
