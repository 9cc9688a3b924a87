"""Cancellable debounce timer on the running asyncio loop."""

import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

import structlog

logger = structlog.get_logger()

Callback = Callable[[], Union[None, Awaitable[None]]]


class DebounceTimer:
    """Run ``callback`` once ``delay`` seconds pass without another ``reset()``.

    Each ``reset()`` cancels the pending run and starts the quiet period
    again, so a burst of resets yields a single run. Coroutine callbacks are
    scheduled as tasks; ``running`` exposes the latest one.
    """

    def __init__(self, delay: float, callback: Callback):
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()
        self.running: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def reset(self) -> None:
        """(Re)start the quiet period. Must be called from within the loop."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        result = self._callback()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            self.running = task

    async def drain(self) -> None:
        """Wait for in-flight callback tasks (not for a pending timer)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
