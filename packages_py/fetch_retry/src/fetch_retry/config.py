"""
Retry policy utilities for fetch_retry
"""
import asyncio
import logging
import random
import time
from typing import Any, Mapping, Optional, Union
from email.utils import parsedate_to_datetime
from .types import (
    RetryPolicy,
    BackoffStrategy,
    NETWORK_ERROR_CODES,
    RATE_LIMITED_STATUS,
)

logger = logging.getLogger("fetch_retry.config")


# Default retry policy
DEFAULT_RETRY_POLICY = RetryPolicy(
    attempts=3,
    delay=1000,
    max_delay=30000,
    backoff=BackoffStrategy.EXPONENTIAL,
    retry_condition=None,
)

# Option names accepted in a request's ``retry`` mapping
_POLICY_FIELDS = (
    "attempts",
    "delay",
    "max_delay",
    "backoff",
    "retry_condition",
    "jitter_factor",
    "respect_retry_after",
)


def resolve_policy(
    policy: Union[RetryPolicy, Mapping[str, Any], None] = None,
) -> RetryPolicy:
    """
    Build a complete policy from a partial one.

    Args:
        policy: A RetryPolicy, a ``retry`` options mapping or None

    Returns:
        Complete policy with defaults for every missing option
    """
    if policy is None:
        return DEFAULT_RETRY_POLICY
    if isinstance(policy, RetryPolicy):
        return policy

    options = {
        name: policy[name]
        for name in _POLICY_FIELDS
        if name in policy and policy[name] is not None
    }
    return RetryPolicy(**options)


def _response_of(error: BaseException) -> Any:
    return getattr(error, "response", None)


def _status_of(error: BaseException) -> Optional[int]:
    status = getattr(_response_of(error), "status", None)
    return status if isinstance(status, int) else None


def _header(headers: Any, name: str) -> Optional[str]:
    if not headers:
        return None
    try:
        items = headers.items()
    except AttributeError:
        return None
    for key, value in items:
        if str(key).lower() == name:
            return str(value)
    return None


def is_retryable_error(error: BaseException) -> bool:
    """
    Default retry predicate.

    Retries network-level failures, any 5xx response and 429 responses.
    Other 4xx responses are not retried.

    Args:
        error: The error raised by the attempt

    Returns:
        Whether the error is retryable
    """
    if getattr(error, "code", None) in NETWORK_ERROR_CODES:
        return True

    status = _status_of(error)
    if status is not None:
        return status >= 500 or status == RATE_LIMITED_STATUS

    return isinstance(error, (ConnectionError, TimeoutError))


def should_retry(error: BaseException, attempt: int, policy: RetryPolicy) -> bool:
    """
    Decide whether another attempt should be made.

    Args:
        error: The error raised by the last attempt
        attempt: Number of attempts already made
        policy: Retry policy

    Returns:
        Whether to retry
    """
    if attempt >= policy.attempts:
        return False

    if policy.retry_condition is not None:
        try:
            return bool(policy.retry_condition(error))
        except Exception as condition_error:
            logger.warning(
                f"should_retry: retry_condition raised {type(condition_error).__name__}, "
                f"using default predicate"
            )

    return is_retryable_error(error)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse Retry-After header value.

    The Retry-After header can contain either:
    - A number of seconds to wait
    - An HTTP-date indicating when to retry

    Args:
        value: Retry-After header value

    Returns:
        Wait time in seconds, or None if parsing fails
    """
    if not value:
        return None

    value = value.strip()

    # Try parsing as seconds
    try:
        return float(int(value))
    except ValueError:
        pass

    # Try parsing as HTTP-date
    try:
        dt = parsedate_to_datetime(value)
        return max(0.0, dt.timestamp() - time.time())
    except (ValueError, TypeError):
        pass

    return None


def compute_delay(
    attempt: int,
    policy: RetryPolicy,
    error: Optional[BaseException] = None,
) -> float:
    """
    Calculate the wait before the next attempt.

    Args:
        attempt: Retry index (0 for the wait before the second attempt)
        policy: Retry policy
        error: The error that triggered the retry, checked for Retry-After

    Returns:
        Delay in milliseconds
    """
    base = policy.delay

    if policy.backoff == BackoffStrategy.CONSTANT:
        delay = base
    elif policy.backoff == BackoffStrategy.LINEAR:
        delay = base * (attempt + 1)
    else:  # EXPONENTIAL (default)
        delay = base * (2 ** attempt)

    # Apply jitter
    delay += random.random() * policy.jitter_factor * delay
    delay = min(delay, policy.max_delay)

    if error is not None and policy.respect_retry_after:
        response = _response_of(error)
        retry_after = parse_retry_after(
            _header(getattr(response, "headers", None), "retry-after")
        )
        if retry_after is not None:
            delay = max(delay, retry_after * 1000)

    return delay


async def async_sleep(milliseconds: float) -> None:
    """
    Sleep for a specified duration (async).

    Args:
        milliseconds: Duration in milliseconds
    """
    await asyncio.sleep(milliseconds / 1000)
