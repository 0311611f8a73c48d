"""Desktop stand-ins for the platform notification and haptics services."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from typing import Callable

from pydantic import TypeAdapter

from taskblast import display
from taskblast.models import (
    DailyTrigger,
    DateTrigger,
    NotificationContent,
    PermissionStatus,
    ScheduledNotification,
)
from taskblast.ports import KeyValueStore

log = logging.getLogger(__name__)

SCHEDULED_STORAGE_KEY = "@taskblast_scheduled_notifications"

_scheduled_list = TypeAdapter(list[ScheduledNotification])


class LocalNotificationGateway:
    """Keeps pending notifications in the key-value store.

    Immediate notifications are handed to ``deliver`` (a rich panel on the
    console by default).  A terminal always has permission to notify.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        deliver: Callable[[NotificationContent], None] = display.print_notification,
    ) -> None:
        self._store = store
        self._deliver = deliver

    async def _load(self) -> list[ScheduledNotification]:
        raw = await self._store.get_item(SCHEDULED_STORAGE_KEY)
        if not raw:
            return []
        return _scheduled_list.validate_json(raw)

    async def _save(self, scheduled: list[ScheduledNotification]) -> None:
        payload = [n.model_dump(mode="json", by_alias=True) for n in scheduled]
        await self._store.set_item(SCHEDULED_STORAGE_KEY, json.dumps(payload))

    async def _add(self, notification: ScheduledNotification) -> str:
        scheduled = await self._load()
        scheduled.append(notification)
        await self._save(scheduled)
        log.debug("Stored %s notification %s", notification.type.value, notification.id)
        return notification.id

    async def schedule_immediate(self, content: NotificationContent) -> str:
        self._deliver(content)
        return uuid.uuid4().hex

    async def schedule_at(self, content: NotificationContent, at: datetime) -> str:
        return await self._add(
            ScheduledNotification(id=uuid.uuid4().hex, content=content, trigger=DateTrigger(at=at))
        )

    async def schedule_daily(self, content: NotificationContent, hour: int, minute: int) -> str:
        return await self._add(
            ScheduledNotification(
                id=uuid.uuid4().hex,
                content=content,
                trigger=DailyTrigger(hour=hour, minute=minute),
            )
        )

    async def cancel(self, notification_id: str) -> None:
        scheduled = await self._load()
        remaining = [n for n in scheduled if n.id != notification_id]
        if len(remaining) != len(scheduled):
            await self._save(remaining)

    async def cancel_all(self) -> None:
        await self._save([])

    async def list_scheduled(self) -> list[ScheduledNotification]:
        return await self._load()

    async def get_permission_status(self) -> PermissionStatus:
        return PermissionStatus.GRANTED

    async def request_permission(self) -> bool:
        return True


class ConsoleHaptics:
    """Terminal bell in place of a vibration motor."""

    async def fire_success(self) -> None:
        display.console.print("\a", end="")
