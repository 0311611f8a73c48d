"""Cancellable timers on top of the asyncio event loop.

Every delayed or recurring callback in the app goes through a
:class:`Scheduler`, so each one has a handle that can be cancelled and
``pending`` tells you whether anything leaked after teardown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Coroutine, Optional, Protocol

log = logging.getLogger(__name__)


class TimerHandle(Protocol):
    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """What the timer needs from a clock-driven event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...

    def spawn(self, coro: Coroutine[object, object, None], *, name: str = "") -> None: ...


class _LoopHandle:
    """Handle for a one-shot or periodic callback scheduled on a loop."""

    __slots__ = ("_owner", "_inner", "_active")

    def __init__(self, owner: AsyncioScheduler) -> None:
        self._owner = owner
        self._inner: Optional[asyncio.TimerHandle] = None
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._finish()
        if self._inner is not None:
            self._inner.cancel()

    def _finish(self) -> None:
        self._active = False
        self._owner._handles.discard(self)


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_at``.

    Periodic callbacks are re-armed against absolute deadlines, so a slow
    callback does not push every later tick back.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._handles: set[_LoopHandle] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def pending(self) -> int:
        """Number of live timer handles."""
        return len(self._handles)

    def call_later(self, delay: float, callback: Callable[[], None]) -> _LoopHandle:
        handle = _LoopHandle(self)

        def fire() -> None:
            if not handle.active:
                return
            handle._finish()
            callback()

        handle._inner = self.loop.call_later(delay, fire)
        self._handles.add(handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> _LoopHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = _LoopHandle(self)
        deadline = self.loop.time() + interval

        def fire() -> None:
            nonlocal deadline
            if not handle.active:
                return
            deadline += interval
            # Re-arm first so the callback is free to cancel the handle.
            handle._inner = self.loop.call_at(deadline, fire)
            callback()

        handle._inner = self.loop.call_at(deadline, fire)
        self._handles.add(handle)
        return handle

    def spawn(self, coro: Coroutine[object, object, None], *, name: str = "") -> None:
        """Run a coroutine fire-and-forget, keeping a reference until it ends."""
        task = self.loop.create_task(coro, name=name or None)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Background task %s failed", task.get_name(), exc_info=exc)

    async def drain(self) -> None:
        """Wait until every spawned coroutine has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel every outstanding handle and spawned task."""
        for handle in list(self._handles):
            handle.cancel()
        for task in list(self._tasks):
            task.cancel()
