"""
Main retry executor implementation
"""
import logging
import time
from typing import (
    Any,
    Awaitable,
    Callable,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from .types import (
    RetryPolicy,
    RetryResult,
    RetryEvent,
    RetryEventListener,
)
from .config import (
    resolve_policy,
    compute_delay,
    should_retry,
    async_sleep,
)


T = TypeVar("T")

# Wraps an awaitable so that an outside signal can interrupt it
Guard = Callable[[Awaitable[Any]], Awaitable[Any]]

logger = logging.getLogger("fetch_retry.executor")


class RetryExecutor:
    """
    Retry Executor

    Provides retry logic with:
    - Attempt limit from the policy
    - Constant, linear or exponential backoff with jitter
    - Retry-After honoring
    - Event emission for observability

    The executor wraps exactly one callable. Whatever the callable does on
    each attempt is re-run as-is; the executor never rebuilds its input.
    """

    def __init__(self, policy: Optional[RetryPolicy] = None, executor_id: Optional[str] = None):
        """
        Create a new RetryExecutor.

        Args:
            policy: Default policy used when execute() gets none
            executor_id: Optional unique identifier
        """
        self._policy = resolve_policy(policy)
        self._id = executor_id or f"retry-{int(time.time() * 1000)}"
        self._listeners: list[RetryEventListener] = []

    def _emit(self, event: RetryEvent) -> None:
        """Emit an event to all listeners."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Retry listener failed on {event.type}")

    async def execute(
        self,
        fn: Callable[[], Awaitable[T]],
        policy: Union[RetryPolicy, Mapping[str, Any], None] = None,
        *,
        retryable: Tuple[Type[BaseException], ...] = (Exception,),
        guard: Optional[Guard] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> RetryResult[T]:
        """
        Execute a function with retry logic.

        Args:
            fn: Async function to execute
            policy: Policy for this execution (defaults to the executor's)
            retryable: Only these error types are considered for retry;
                anything else is re-raised at once
            guard: Wraps each backoff sleep, e.g. to make it cancelable
            metadata: Metadata attached to emitted events

        Returns:
            Result with retry metadata

        Raises:
            The error of the last attempt, unchanged.

        Example:
            executor = RetryExecutor()
            result = await executor.execute(fetch_data, {"attempts": 5, "delay": 200})
        """
        resolved = resolve_policy(policy) if policy is not None else self._policy

        start_time = time.monotonic()
        delay_time = 0.0
        attempt = 0

        while True:
            self._emit(RetryEvent(
                type="attempt:start",
                attempt=attempt,
                data={"metadata": metadata} if metadata else {},
            ))

            attempt_start = time.monotonic()

            try:
                result = await fn()
            except retryable as error:
                attempt += 1
                will_retry = should_retry(error, attempt, resolved)

                self._emit(RetryEvent(
                    type="attempt:fail",
                    attempt=attempt,
                    data={
                        "error": str(error),
                        "will_retry": will_retry,
                        "metadata": metadata,
                    },
                ))

                if not will_retry:
                    if attempt > 1:
                        logger.debug(
                            f"RetryExecutor[{self._id}]: giving up after {attempt} attempts: "
                            f"{type(error).__name__}: {error}"
                        )
                    raise

                delay = compute_delay(attempt - 1, resolved, error)
                delay_time += delay / 1000

                logger.debug(
                    f"RetryExecutor[{self._id}]: attempt {attempt} failed with "
                    f"{type(error).__name__}, retrying in {delay:.0f}ms"
                )
                self._emit(RetryEvent(
                    type="retry:wait",
                    attempt=attempt,
                    data={
                        "delay_ms": delay,
                        "metadata": metadata,
                    },
                ))

                if guard is not None:
                    await guard(async_sleep(delay))
                else:
                    await async_sleep(delay)
                continue

            attempt += 1
            self._emit(RetryEvent(
                type="attempt:success",
                attempt=attempt,
                data={
                    "duration_seconds": time.monotonic() - attempt_start,
                    "metadata": metadata,
                },
            ))

            return RetryResult(
                result=result,
                attempts=attempt,
                total_time_seconds=time.monotonic() - start_time,
                delay_time_seconds=delay_time,
            )

    def on(self, listener: RetryEventListener) -> Callable[[], None]:
        """
        Add an event listener.

        Args:
            listener: Event listener function

        Returns:
            Function to remove the listener
        """
        self._listeners.append(listener)
        return lambda: self.off(listener)

    def off(self, listener: RetryEventListener) -> None:
        """Remove an event listener."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def id(self) -> str:
        """Get the executor ID."""
        return self._id

    @property
    def policy(self) -> RetryPolicy:
        """Get the default policy."""
        return self._policy


def create_retry_executor(
    policy: Optional[RetryPolicy] = None,
    executor_id: Optional[str] = None,
) -> RetryExecutor:
    """Create a new retry executor."""
    return RetryExecutor(policy, executor_id)


async def retry(
    fn: Callable[[], Awaitable[T]],
    policy: Union[RetryPolicy, Mapping[str, Any], None] = None,
) -> T:
    """
    Execute a function with retry logic (convenience function).

    Args:
        fn: Async function to execute
        policy: Retry policy or ``retry`` options mapping

    Returns:
        The function's result

    Example:
        data = await retry(fetch_data, {"attempts": 3, "delay": 100})
    """
    executor = RetryExecutor()
    outcome = await executor.execute(fn, policy)
    return outcome.result
