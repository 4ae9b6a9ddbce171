"""
Cooperative cancellation for fetch_client.

A CancelSource owns the right to cancel; its CancelToken is handed to the
request pipeline, which observes it at every await point.

Example:
    source = CancelSource()
    task = asyncio.create_task(client.get("/slow", {"cancel_token": source.token}))
    source.cancel("user navigated away")
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from .errors import CancellationError

T = TypeVar("T")

logger = logging.getLogger("fetch_client.cancellation")

CancelCallback = Callable[[Optional[str]], None]


class CancelToken:
    """Read side of a cancellation signal. Once cancelled, stays cancelled."""

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Optional[str] = None
        self._callbacks: List[CancelCallback] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def throw_if_requested(self) -> None:
        """Raise CancellationError if the token has been cancelled."""
        if self._cancelled:
            raise CancellationError(self._reason)

    def on_cancel(self, callback: CancelCallback) -> Callable[[], None]:
        """
        Register a callback invoked once with the cancellation reason.

        Registering on an already cancelled token invokes the callback
        immediately. Returns a function that unregisters the callback.
        """
        if self._cancelled:
            self._invoke(callback)
            return lambda: None

        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def wait(self) -> Optional[str]:
        """Wait until the token is cancelled; returns the reason."""
        if self._cancelled:
            return self._reason

        future = asyncio.get_running_loop().create_future()
        unsubscribe = self.on_cancel(
            lambda reason: future.done() or future.set_result(reason)
        )
        try:
            return await future
        finally:
            unsubscribe()

    async def race(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token is cancelled first.

        On cancellation the underlying task is cancelled, allowed to unwind,
        and CancellationError is raised. Cancellation wins when both settle
        in the same loop iteration.
        """
        if self._cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CancellationError(self._reason)

        task = asyncio.ensure_future(awaitable)
        signal = asyncio.get_running_loop().create_future()
        unsubscribe = self.on_cancel(
            lambda reason: signal.done() or signal.set_result(reason)
        )
        try:
            await asyncio.wait({task, signal}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            unsubscribe()
            if not signal.done():
                signal.cancel()

        if self._cancelled:
            if not task.done():
                task.cancel()
                await asyncio.wait({task})
            if not task.cancelled():
                # Mark the outcome as retrieved; the cancellation supersedes it.
                task.exception()
            raise CancellationError(self._reason)

        return task.result()

    def _cancel(self, reason: Optional[str]) -> bool:
        if self._cancelled:
            return False
        self._cancelled = True
        self._reason = reason
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._invoke(callback)
        return True

    def _invoke(self, callback: CancelCallback) -> None:
        try:
            callback(self._reason)
        except Exception:
            logger.exception("CancelToken: cancel callback failed")

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self._cancelled}, reason={self._reason!r})"


class CancelSource:
    """Write side of a cancellation signal."""

    def __init__(self) -> None:
        self._token = CancelToken()

    @property
    def token(self) -> CancelToken:
        return self._token

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def cancel(self, reason: Optional[str] = None) -> bool:
        """
        Cancel the token. Idempotent: only the first call has an effect.

        Returns:
            True if this call cancelled the token
        """
        changed = self._token._cancel(reason)
        if changed:
            logger.debug(f"CancelSource.cancel: reason={reason!r}")
        return changed


def create_cancel_source() -> CancelSource:
    """Create a new cancel source."""
    return CancelSource()


async def maybe_race(token: Optional[CancelToken], awaitable: Awaitable[Any]) -> Any:
    """Race against ``token`` when one is given, otherwise just await."""
    if token is None:
        return await awaitable
    return await token.race(awaitable)
