"""Ports (interfaces) the core depends on.

The timer and the notification policy talk to the platform only through
these Protocols, so desktop adapters, mobile bridges and test fakes are
interchangeable.  Every I/O method is a coroutine and may raise.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Protocol

from taskblast.models import (
    AppVisibility,
    NotificationContent,
    PermissionStatus,
    ScheduledNotification,
    Task,
)

VisibilityListener = Callable[[AppVisibility], None]
Unsubscribe = Callable[[], None]


class VisibilitySignal(Protocol):
    """Host platform's foreground/background event source."""

    def subscribe(self, on_change: VisibilityListener) -> Unsubscribe: ...


class NotificationGateway(Protocol):
    """OS-level notification scheduler."""

    async def schedule_immediate(self, content: NotificationContent) -> str: ...

    async def schedule_at(self, content: NotificationContent, at: datetime) -> str: ...

    async def schedule_daily(self, content: NotificationContent, hour: int, minute: int) -> str: ...

    async def cancel(self, notification_id: str) -> None: ...

    async def cancel_all(self) -> None: ...

    async def list_scheduled(self) -> list[ScheduledNotification]: ...

    async def get_permission_status(self) -> PermissionStatus: ...

    async def request_permission(self) -> bool: ...


class HapticFeedback(Protocol):
    async def fire_success(self) -> None: ...


class KeyValueStore(Protocol):
    """String key-value persistence (AsyncStorage-style)."""

    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...


class TaskStore(Protocol):
    """External task storage, touched only by the timer's completion hook."""

    async def get_task(self, task_id: str) -> Optional[Task]: ...

    async def increment_completed_cycles(self, task_id: str) -> int: ...

    async def mark_completed(self, task_id: str) -> None: ...


class TimerCompleteNotifier(Protocol):
    """The slice of the notification policy the timer needs."""

    async def notify_timer_complete(self, task_name: str, is_break_time: bool = False) -> None: ...
