"""Deterministic stand-ins for the ports, used across the test suite."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from taskblast.models import (
    AppVisibility,
    DailyTrigger,
    DateTrigger,
    ImmediateTrigger,
    NotificationContent,
    PermissionStatus,
    ScheduledNotification,
    Task,
)


class FakeClock:
    """Settable wall clock in epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@dataclass
class _FakeHandle:
    due: float
    callback: Callable[[], None]
    interval: Optional[float] = None
    active: bool = True

    def cancel(self) -> None:
        self.active = False


class FakeScheduler:
    """Virtual-time scheduler: nothing fires until :meth:`advance` is called.

    ``advance`` moves the shared :class:`FakeClock` forward as it fires
    callbacks, so timers and clock-based logic see consistent time.
    """

    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.clock = clock or FakeClock()
        self._handles: list[_FakeHandle] = []
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if h.active)

    def call_later(self, delay: float, callback: Callable[[], None]) -> _FakeHandle:
        handle = _FakeHandle(due=self.clock.now + delay, callback=callback)
        self._handles.append(handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> _FakeHandle:
        handle = _FakeHandle(due=self.clock.now + interval, callback=callback, interval=interval)
        self._handles.append(handle)
        return handle

    def spawn(self, coro, *, name: str = "") -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def advance(self, seconds: float) -> None:
        target = self.clock.now + seconds
        while True:
            live = [h for h in self._handles if h.active and h.due <= target]
            if not live:
                break
            handle = min(live, key=lambda h: h.due)
            self.clock.now = handle.due
            if handle.interval is None:
                handle.active = False
            else:
                handle.due += handle.interval
            handle.callback()
        self._handles = [h for h in self._handles if h.active]
        self.clock.now = target

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class FakeVisibilitySignal:
    """Visibility source the test drives with :meth:`emit`."""

    def __init__(self) -> None:
        self.listeners: list[Callable[[AppVisibility], None]] = []

    def subscribe(self, on_change: Callable[[AppVisibility], None]) -> Callable[[], None]:
        self.listeners.append(on_change)

        def unsubscribe() -> None:
            if on_change in self.listeners:
                self.listeners.remove(on_change)

        return unsubscribe

    def emit(self, state: AppVisibility) -> None:
        for listener in list(self.listeners):
            listener(state)


@dataclass
class FakeGateway:
    """Records every call; ``fail_*`` flags make the matching call raise."""

    scheduled: list[ScheduledNotification] = field(default_factory=list)
    immediate: list[NotificationContent] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    permission: PermissionStatus = PermissionStatus.GRANTED
    grant_on_request: bool = True
    fail_schedule: bool = False
    fail_list: bool = False
    fail_cancel: bool = False
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def _next_id(self) -> str:
        return f"n{next(self._ids)}"

    async def schedule_immediate(self, content: NotificationContent) -> str:
        self.calls.append("schedule_immediate")
        if self.fail_schedule:
            raise RuntimeError("gateway down")
        self.immediate.append(content)
        return self._next_id()

    async def schedule_at(self, content: NotificationContent, at: datetime) -> str:
        self.calls.append("schedule_at")
        if self.fail_schedule:
            raise RuntimeError("gateway down")
        n = ScheduledNotification(id=self._next_id(), content=content, trigger=DateTrigger(at=at))
        self.scheduled.append(n)
        return n.id

    async def schedule_daily(self, content: NotificationContent, hour: int, minute: int) -> str:
        self.calls.append("schedule_daily")
        if self.fail_schedule:
            raise RuntimeError("gateway down")
        n = ScheduledNotification(
            id=self._next_id(), content=content, trigger=DailyTrigger(hour=hour, minute=minute)
        )
        self.scheduled.append(n)
        # let other coroutines run, as a real platform call would
        await asyncio.sleep(0)
        return n.id

    async def cancel(self, notification_id: str) -> None:
        self.calls.append("cancel")
        if self.fail_cancel:
            raise RuntimeError("gateway down")
        self.cancelled.append(notification_id)
        self.scheduled = [n for n in self.scheduled if n.id != notification_id]

    async def cancel_all(self) -> None:
        self.calls.append("cancel_all")
        if self.fail_cancel:
            raise RuntimeError("gateway down")
        self.scheduled.clear()

    async def list_scheduled(self) -> list[ScheduledNotification]:
        self.calls.append("list_scheduled")
        if self.fail_list:
            raise RuntimeError("gateway down")
        await asyncio.sleep(0)
        return list(self.scheduled)

    async def get_permission_status(self) -> PermissionStatus:
        return self.permission

    async def request_permission(self) -> bool:
        self.calls.append("request_permission")
        if self.grant_on_request:
            self.permission = PermissionStatus.GRANTED
        return self.grant_on_request

    def add_existing(self, content: NotificationContent, trigger=None) -> str:
        n = ScheduledNotification(
            id=self._next_id(), content=content, trigger=trigger or ImmediateTrigger()
        )
        self.scheduled.append(n)
        return n.id


@dataclass
class FakeHaptics:
    fired: int = 0
    fail: bool = False

    async def fire_success(self) -> None:
        if self.fail:
            raise RuntimeError("no vibration motor")
        self.fired += 1


@dataclass
class FakeKeyValueStore:
    data: dict[str, str] = field(default_factory=dict)
    fail_read: bool = False
    fail_write: bool = False

    async def get_item(self, key: str) -> Optional[str]:
        if self.fail_read:
            raise OSError("storage unavailable")
        return self.data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        if self.fail_write:
            raise OSError("storage unavailable")
        self.data[key] = value


@dataclass
class FakeTaskStore:
    tasks: dict[str, Task] = field(default_factory=dict)
    fail_increment: bool = False
    fail_mark: bool = False
    fail_get: bool = False
    marked: list[str] = field(default_factory=list)

    async def get_task(self, task_id: str) -> Optional[Task]:
        if self.fail_get:
            raise RuntimeError("task store down")
        return self.tasks.get(task_id)

    async def increment_completed_cycles(self, task_id: str) -> int:
        if self.fail_increment:
            raise RuntimeError("task store down")
        task = self.tasks[task_id]
        task.completed_cycles += 1
        return task.completed_cycles

    async def mark_completed(self, task_id: str) -> None:
        if self.fail_mark:
            raise RuntimeError("task store down")
        self.tasks[task_id].completed = True
        self.marked.append(task_id)


@dataclass
class RecordingNotifier:
    calls: list[tuple[str, bool]] = field(default_factory=list)
    fail: bool = False

    async def notify_timer_complete(self, task_name: str, is_break_time: bool = False) -> None:
        self.calls.append((task_name, is_break_time))
        if self.fail:
            raise RuntimeError("notifier exploded")
