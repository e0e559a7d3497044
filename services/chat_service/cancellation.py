"""
Cancellation tokens for generation requests.

A token is created per request and handed to every service call. Signalling it
abandons the awaited call and makes the request raise RequestCancelled at its
next suspension point. Tokens may be signalled from any thread; the event loop
that created the token is woken through call_soon_threadsafe.
"""

import asyncio
import threading
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class RequestCancelled(Exception):
    """The request's cancellation token was signalled"""
    pass


class CancellationToken:
    """Single-use cancellation capability for one request"""

    def __init__(self, reason: str = "stopped"):
        self._event = asyncio.Event()
        self._cancelled = False
        self._lock = threading.Lock()
        self._loop = _running_loop()
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: Optional[str] = None):
        """Signal the token; calling it again has no further effect"""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            if reason:
                self.reason = reason

        if self._loop is None or self._loop is _running_loop():
            self._event.set()
            return

        try:
            self._loop.call_soon_threadsafe(self._event.set)
        except RuntimeError:
            # Loop already closed, so nothing is waiting on the event
            pass

    def raise_if_cancelled(self):
        if self.cancelled:
            raise RequestCancelled(self.reason)

    async def wait(self):
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await a service call unless the token is signalled first.

        Raises:
            RequestCancelled: The token was signalled before the call finished;
                the call's task has been cancelled
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise RequestCancelled(self.reason)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if self.cancelled:
            if not task.done():
                task.cancel()
                await asyncio.wait({task})
            if not task.cancelled():
                # The abandoned call's outcome is irrelevant; mark it retrieved
                task.exception()
            raise RequestCancelled(self.reason)

        return task.result()
