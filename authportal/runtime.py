"""
Background Event Loop.

The Tk main loop owns the main thread, so the auth core runs on one
asyncio loop in a dedicated daemon thread.  All ``SessionStore`` and
``ViewController`` state is touched only from that loop; the UI submits
coroutines with :meth:`AsyncRunner.submit` and gets results back on the
Tk thread through ``widget.after(0, ...)``.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Optional, TypeVar

from authportal.logger import StructuredLogger

T = TypeVar("T")


class AsyncRunner:
    """Owns an event loop running in a background thread."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger
        self._loop: asyncio.AbstractEventLoop = asyncio.new_event_loop()
        self._thread: threading.Thread = threading.Thread(
            target=self._run, name="authportal-loop", daemon=True,
        )
        self._started: threading.Event = threading.Event()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def start(self) -> None:
        self._thread.start()
        self._started.wait()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._started.set)
        self._loop.run_forever()

    def submit(
        self,
        coro: Coroutine[Any, Any, T],
        on_done: Optional[Callable[[T], None]] = None,
    ) -> "Future[T]":
        """Schedule *coro* on the loop; *on_done* receives its result.

        *on_done* runs on the loop thread; UI callers wrap it so it hops
        back to Tk.
        """
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)

        def _finished(done: "Future[T]") -> None:
            if done.cancelled():
                return
            exc = done.exception()
            if exc is not None:
                self._logger.error("Background task failed: %s", exc, exc_info=exc)
                return
            if on_done is not None:
                on_done(done.result())

        future.add_done_callback(_finished)
        return future

    def call(self, func: Callable[[], T], timeout: float = 5.0) -> T:
        """Run a plain callable on the loop thread and wait for its result."""

        async def _invoke() -> T:
            return func()

        return asyncio.run_coroutine_threadsafe(_invoke(), self._loop).result(timeout)

    def post(self, func: Callable[[], object]) -> None:
        """Queue a plain callable on the loop thread without waiting."""
        self._loop.call_soon_threadsafe(func)

    def stop(self) -> None:
        if not self._loop.is_running():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5.0)
