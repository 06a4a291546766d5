"""Cancelable timers and fire-and-forget task spawning on the event loop."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

# Strong references to running background tasks; the loop only keeps weak ones
_background_tasks: set[asyncio.Task] = set()


def spawn(coro: Awaitable[Any], *, name: str | None = None) -> asyncio.Task:
    """Run a coroutine in the background without awaiting it."""
    task = asyncio.ensure_future(coro)
    if name:
        task.set_name(name)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task


def _on_task_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f"Background task {task.get_name()} failed: {exc!r}")


async def drain_background_tasks() -> None:
    """Wait for every spawned task to finish (shutdown and tests)."""
    while _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)


class Timer:
    """
    A single cancelable delayed call.

    Scheduling again replaces any pending call. The callback may return an awaitable,
    which is spawned as a background task.
    """

    def __init__(self, name: str = "timer"):
        self.name = name
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay: float, fn: Callable[[], Any]) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(max(0.0, delay), self._fire, fn)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, fn: Callable[[], Any]) -> None:
        self._handle = None
        result = fn()
        if inspect.isawaitable(result):
            spawn(result, name=self.name)
