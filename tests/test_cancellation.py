"""
Tests for request cancellation tokens
"""

import asyncio
import threading

import pytest

from services.chat_service.cancellation import CancellationToken, RequestCancelled


class TestCancellationToken:
    """Test signalling and guarded awaits"""

    def test_cancel_is_sticky(self):
        token = CancellationToken()
        assert not token.cancelled

        token.cancel("stopped by user")
        token.cancel("superseded")

        assert token.cancelled
        assert token.reason == "stopped by user"

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()

        token.cancel()
        with pytest.raises(RequestCancelled):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_guard_returns_result(self):
        async def call():
            return "enhanced"

        assert await CancellationToken().guard(call()) == "enhanced"

    @pytest.mark.asyncio
    async def test_guard_propagates_errors(self):
        async def call():
            raise ValueError("service failed")

        with pytest.raises(ValueError):
            await CancellationToken().guard(call())

    @pytest.mark.asyncio
    async def test_guard_on_cancelled_token_never_starts_call(self):
        started = False

        async def call():
            nonlocal started
            started = True

        token = CancellationToken()
        token.cancel()

        with pytest.raises(RequestCancelled):
            await token.guard(call())
        assert started is False

    @pytest.mark.asyncio
    async def test_cancel_abandons_pending_call(self):
        token = CancellationToken()
        entered = asyncio.Event()
        call_cancelled = asyncio.Event()

        async def slow_call():
            entered.set()
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                call_cancelled.set()
                raise

        guarded = asyncio.ensure_future(token.guard(slow_call()))
        await entered.wait()

        token.cancel()

        with pytest.raises(RequestCancelled):
            await asyncio.wait_for(guarded, timeout=1)
        assert call_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_wait_returns_once_cancelled(self):
        token = CancellationToken()
        waiter = asyncio.ensure_future(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_cancel_from_another_thread_wakes_the_loop(self):
        token = CancellationToken()
        waiter = asyncio.ensure_future(token.wait())
        await asyncio.sleep(0)

        thread = threading.Thread(target=token.cancel, args=("stopped by user",))
        thread.start()

        await asyncio.wait_for(waiter, timeout=1)
        thread.join()
        assert token.cancelled
        assert token.reason == "stopped by user"

    def test_cancel_after_loop_closed(self):
        async def make_token():
            return CancellationToken()

        token = asyncio.run(make_token())
        token.cancel()

        assert token.cancelled
