"""
Background event loop for running chat requests outside the Streamlit script thread.

Streamlit reruns the page script on every interaction, so a loop created inside
a script run dies with it. This loop lives on its own daemon thread for the
life of the process; async clients created on it keep working across reruns,
and the script thread stays free to process the Stop button.
"""

import asyncio
import concurrent.futures
import threading
from typing import Any, Callable, Coroutine, Optional

from utils.logging_config import get_logger

logger = get_logger(__name__)


class BackgroundEventLoop:
    """
    Event loop running forever on a daemon thread.

    Coroutines are handed over with submit() and come back as
    concurrent.futures.Future objects the calling thread can poll.
    """

    def __init__(self, name: str = "friday-request-loop"):
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        self.start()
        return self._loop

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the loop thread; calling it again has no effect"""
        with self._lock:
            if self.is_running:
                return
            self._loop = asyncio.new_event_loop()
            ready = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._loop, ready),
                name=self.name,
                daemon=True
            )
            self._thread.start()
            ready.wait()
            logger.info(f"Background event loop started: {self.name}")

    @staticmethod
    def _run(loop: asyncio.AbstractEventLoop, ready: threading.Event):
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        try:
            loop.run_forever()
        finally:
            loop.close()

    def submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        """Schedule a coroutine on the loop"""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def call_soon(self, callback: Callable[..., Any], *args: Any):
        """Run a plain callback on the loop thread"""
        self.loop.call_soon_threadsafe(callback, *args)

    def stop(self, timeout: float = 5.0):
        """Stop the loop and wait for its thread"""
        with self._lock:
            if not self.is_running:
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout)
            self._thread = None
            logger.info(f"Background event loop stopped: {self.name}")
