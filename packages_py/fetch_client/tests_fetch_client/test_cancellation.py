"""
Tests for cancellation.py
Logic testing: State Transition, Decision/Branch coverage
"""
import asyncio

import pytest

from fetch_client.cancellation import CancelSource, CancelToken, create_cancel_source, maybe_race
from fetch_client.errors import CancellationError, is_cancel


class TestCancelSource:
    """Tests for CancelSource state transitions."""

    def test_initial_state(self, cancel_source):
        assert cancel_source.cancelled is False
        assert cancel_source.token.cancelled is False
        assert cancel_source.token.reason is None

    def test_cancel_sets_reason(self, cancel_source):
        assert cancel_source.cancel("user abort") is True
        assert cancel_source.token.cancelled is True
        assert cancel_source.token.reason == "user abort"

    # State: cancelled -> cancelled is a no-op
    def test_cancel_is_idempotent(self, cancel_source):
        cancel_source.cancel("first")
        assert cancel_source.cancel("second") is False
        assert cancel_source.token.reason == "first"

    def test_factory(self):
        assert isinstance(create_cancel_source(), CancelSource)


class TestCancelToken:
    """Tests for CancelToken."""

    def test_throw_if_requested(self, cancel_source):
        cancel_source.token.throw_if_requested()
        cancel_source.cancel("stop")
        with pytest.raises(CancellationError) as exc_info:
            cancel_source.token.throw_if_requested()
        assert exc_info.value.reason == "stop"
        assert is_cancel(exc_info.value)

    def test_on_cancel_invoked_once(self, cancel_source):
        reasons = []
        cancel_source.token.on_cancel(reasons.append)

        cancel_source.cancel("a")
        cancel_source.cancel("b")

        assert reasons == ["a"]

    def test_on_cancel_after_cancel_fires_immediately(self, cancel_source):
        cancel_source.cancel("late")
        reasons = []
        cancel_source.token.on_cancel(reasons.append)
        assert reasons == ["late"]

    def test_unsubscribe(self, cancel_source):
        reasons = []
        unsubscribe = cancel_source.token.on_cancel(reasons.append)
        unsubscribe()
        cancel_source.cancel("x")
        assert reasons == []

    def test_failing_callback_does_not_stop_others(self, cancel_source):
        reasons = []

        def broken(reason):
            raise RuntimeError("listener bug")

        cancel_source.token.on_cancel(broken)
        cancel_source.token.on_cancel(reasons.append)

        cancel_source.cancel("x")

        assert reasons == ["x"]

    @pytest.mark.asyncio
    async def test_wait_returns_reason(self, cancel_source):
        waiter = asyncio.ensure_future(cancel_source.token.wait())
        await asyncio.sleep(0)
        cancel_source.cancel("done")
        assert await waiter == "done"


class TestRace:
    """Tests for CancelToken.race."""

    @pytest.mark.asyncio
    async def test_result_when_not_cancelled(self, cancel_source):
        async def work():
            return 42

        assert await cancel_source.token.race(work()) == 42

    @pytest.mark.asyncio
    async def test_error_propagates(self, cancel_source):
        async def work():
            raise ValueError("inner")

        with pytest.raises(ValueError, match="inner"):
            await cancel_source.token.race(work())

    @pytest.mark.asyncio
    async def test_already_cancelled_never_starts_work(self, cancel_source):
        started = []

        async def work():
            started.append(True)

        cancel_source.cancel("before")

        with pytest.raises(CancellationError):
            await cancel_source.token.race(work())
        assert started == []

    @pytest.mark.asyncio
    async def test_cancel_interrupts_and_cancels_work(self, cancel_source):
        cancelled = asyncio.Event()

        async def work():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def cancel_soon():
            await asyncio.sleep(0.01)
            cancel_source.cancel("timeout")

        asyncio.ensure_future(cancel_soon())

        with pytest.raises(CancellationError, match="timeout"):
            await cancel_source.token.race(work())
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_cancellation_wins_over_simultaneous_result(self, cancel_source):
        async def work():
            cancel_source.cancel("raced")
            return "value"

        with pytest.raises(CancellationError, match="raced"):
            await cancel_source.token.race(work())

    @pytest.mark.asyncio
    async def test_maybe_race_without_token(self):
        async def work():
            return "plain"

        assert await maybe_race(None, work()) == "plain"

    @pytest.mark.asyncio
    async def test_maybe_race_with_token(self):
        token = CancelToken()

        async def work():
            return "raced"

        assert await maybe_race(token, work()) == "raced"
