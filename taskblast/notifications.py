"""Notification policy: decides whether to notify, and what to say.

Every public coroutine here contains its own failures.  A refused or failed
notification comes back as ``None`` (or an empty list) and is logged; the
only exceptions that escape are argument errors.

Refusals, in the order they are checked:

* notifications disabled in preferences (or the digest, for digests)
* break time / app not in the foreground (timer completion only)
* trigger time already passed (reminders only)
* the per-type hourly cap has been reached
* the previous digest could not be cancelled (digests only)
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict, deque
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional, Sequence

from taskblast.messages import ALL_TASKS_COMPLETE, MessageSelector
from taskblast.models import (
    NotificationContent,
    NotificationPayload,
    NotificationPreferences,
    NotificationType,
    PermissionStatus,
    ScheduledNotification,
)
from taskblast.ports import HapticFeedback, KeyValueStore, NotificationGateway
from taskblast.preferences import PreferenceStore
from taskblast.visibility import StaticVisibilitySignal, VisibilityMonitor

log = logging.getLogger(__name__)

RATE_WINDOW = timedelta(hours=1)
RATE_STORAGE_KEY = "@taskblast_rate_window"


def next_daily_occurrence(hour: int, minute: int, now: datetime) -> datetime:
    """Next time the clock reads ``hour:minute``; tomorrow if that has passed today."""
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class RateLimiter:
    """Rolling-window send counter, kept per notification type."""

    def __init__(
        self,
        now: Callable[[], datetime] = datetime.now,
        window: timedelta = RATE_WINDOW,
    ) -> None:
        self._now = now
        self._window = window
        self._sent: dict[NotificationType, deque[datetime]] = defaultdict(deque)

    def _prune(self, kind: NotificationType) -> deque[datetime]:
        sent = self._sent[kind]
        cutoff = self._now() - self._window
        while sent and sent[0] <= cutoff:
            sent.popleft()
        return sent

    def count(self, kind: NotificationType) -> int:
        return len(self._prune(kind))

    def allows(self, kind: NotificationType, cap: int) -> bool:
        return self.count(kind) < cap

    def record(self, kind: NotificationType) -> None:
        self._sent[kind].append(self._now())

    def snapshot(self) -> dict[str, list[str]]:
        """Send times still inside the window, as ISO strings keyed by type name."""
        out: dict[str, list[str]] = {}
        for kind in list(self._sent):
            sent = self._prune(kind)
            if sent:
                out[kind.value] = [t.isoformat() for t in sent]
        return out

    def restore(self, data: Mapping[str, Sequence[str]]) -> None:
        """Replace the send history with a :meth:`snapshot` taken elsewhere."""
        sent = {
            NotificationType(name): deque(sorted(datetime.fromisoformat(s) for s in stamps))
            for name, stamps in data.items()
        }
        self._sent.clear()
        self._sent.update(sent)


class NotificationPolicy:
    """Preference-gated front end to the notification gateway.

    Pass ``rate_store`` to keep the hourly send history in a key-value store,
    so the cap holds across processes (the CLI builds a new policy per
    command).
    """

    def __init__(
        self,
        preferences: PreferenceStore,
        gateway: NotificationGateway,
        *,
        haptics: Optional[HapticFeedback] = None,
        visibility: Optional[VisibilityMonitor] = None,
        messages: Optional[MessageSelector] = None,
        now: Callable[[], datetime] = datetime.now,
        rate_limiter: Optional[RateLimiter] = None,
        rate_store: Optional[KeyValueStore] = None,
    ) -> None:
        self._preferences = preferences
        self._gateway = gateway
        self._haptics = haptics
        self._visibility = visibility or VisibilityMonitor(StaticVisibilitySignal())
        self._messages = messages or MessageSelector()
        self._now = now
        self._limiter = rate_limiter or RateLimiter(now)
        self._rate_store = rate_store
        self._digest_lock = asyncio.Lock()

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    async def _load_rate_window(self) -> None:
        if self._rate_store is None:
            return
        try:
            raw = await self._rate_store.get_item(RATE_STORAGE_KEY)
        except Exception:
            log.warning("Could not read the notification send history", exc_info=True)
            return
        if not raw:
            return
        try:
            self._limiter.restore(json.loads(raw))
        except (ValueError, TypeError, AttributeError):
            log.warning("Ignoring unreadable notification send history", exc_info=True)

    async def _record(self, kind: NotificationType) -> None:
        self._limiter.record(kind)
        if self._rate_store is None:
            return
        try:
            await self._rate_store.set_item(RATE_STORAGE_KEY, json.dumps(self._limiter.snapshot()))
        except Exception:
            log.warning("Could not save the notification send history", exc_info=True)

    async def _rate_limited(self, kind: NotificationType, prefs: NotificationPreferences) -> bool:
        await self._load_rate_window()
        if self._limiter.allows(kind, prefs.max_notifications_per_hour):
            return False
        log.info(
            "Hourly cap of %d reached for %s; not scheduling",
            prefs.max_notifications_per_hour,
            kind.value,
        )
        return True

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    async def check_permissions(self) -> bool:
        try:
            return await self._gateway.get_permission_status() == PermissionStatus.GRANTED
        except Exception:
            log.warning("Error checking notification permissions", exc_info=True)
            return False

    async def request_permissions(self) -> bool:
        """Ask for permission unless it is already granted."""
        try:
            status = await self._gateway.get_permission_status()
            if status == PermissionStatus.GRANTED:
                return True
            return await self._gateway.request_permission()
        except Exception:
            log.warning("Error requesting notification permissions", exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def schedule_task_reminder(
        self,
        task_id: str,
        task_name: str,
        start_time: datetime,
        reminder_minutes: Optional[int] = None,
    ) -> Optional[str]:
        """Schedule a reminder ahead of ``start_time``. Returns the notification id."""
        if reminder_minutes is not None and reminder_minutes < 0:
            raise ValueError(f"reminder_minutes must be >= 0, got {reminder_minutes}")

        prefs = await self._preferences.get_preferences()
        if not prefs.enabled:
            log.debug("Notifications disabled; no reminder for task %s", task_id)
            return None

        minutes = int(prefs.reminder_timing) if reminder_minutes is None else reminder_minutes
        trigger_at = start_time - timedelta(minutes=minutes)
        if trigger_at <= self._now():
            log.debug("Reminder for task %s would fire in the past (%s)", task_id, trigger_at)
            return None
        if await self._rate_limited(NotificationType.TASK_REMINDER, prefs):
            return None

        kind = NotificationType.TASK_REMINDER
        content = NotificationContent(
            title=self._messages.title(kind),
            body=self._messages.select(kind, task_name=task_name),
            sound=prefs.sound_enabled,
            priority="high",
            data=NotificationPayload(type=kind, task_id=task_id, task_name=task_name),
        )
        try:
            notification_id = await self._gateway.schedule_at(content, trigger_at)
        except Exception:
            log.warning("Error scheduling reminder for task %s", task_id, exc_info=True)
            return None
        await self._record(kind)
        return notification_id

    async def notify_timer_complete(self, task_name: str, is_break_time: bool = False) -> None:
        """Celebrate a finished session, but only while the user is looking."""
        if is_break_time:
            return
        if not self._visibility.is_foreground:
            log.debug("App is %s; skipping completion notification", self._visibility.current.value)
            return

        prefs = await self._preferences.get_preferences()
        if not prefs.enabled:
            return
        kind = NotificationType.TIMER_COMPLETE
        if await self._rate_limited(kind, prefs):
            return

        if prefs.vibration_enabled and self._haptics is not None:
            try:
                await self._haptics.fire_success()
            except Exception:
                log.warning("Haptic feedback failed", exc_info=True)

        content = NotificationContent(
            title=self._messages.title(kind),
            body=self._messages.select(kind, task_name=task_name),
            sound=prefs.sound_enabled,
            priority="high",
            data=NotificationPayload(type=kind, task_name=task_name),
        )
        try:
            await self._gateway.schedule_immediate(content)
        except Exception:
            log.warning("Error showing timer complete notification", exc_info=True)
            return
        await self._record(kind)

    async def schedule_daily_digest(
        self,
        task_count: int,
        preferences: Optional[NotificationPreferences] = None,
    ) -> Optional[str]:
        """Replace the daily digest with one reporting ``task_count`` open tasks."""
        if task_count < 0:
            raise ValueError(f"task_count must be >= 0, got {task_count}")

        prefs = preferences or await self._preferences.get_preferences()
        if not prefs.enabled or not prefs.daily_digest_enabled:
            return None
        kind = NotificationType.DAILY_DIGEST
        hour, minute = prefs.digest_hour_minute
        next_at = next_daily_occurrence(hour, minute, self._now())
        if task_count == 0:
            body = ALL_TASKS_COMPLETE
        else:
            body = self._messages.select(kind, count=task_count)
        content = NotificationContent(
            title=self._messages.title(kind),
            body=body,
            sound=prefs.sound_enabled,
            data=NotificationPayload(type=kind, task_count=task_count),
        )

        # Two overlapping calls must not both get past the cancel step.
        async with self._digest_lock:
            if await self._rate_limited(kind, prefs):
                return None
            if not await self.cancel_daily_digest():
                log.warning("Previous daily digest could not be cancelled; not scheduling another")
                return None
            try:
                notification_id = await self._gateway.schedule_daily(content, hour, minute)
            except Exception:
                log.warning("Error scheduling daily digest", exc_info=True)
                return None
            await self._record(kind)
        log.info(
            "Daily digest scheduled for %s (next at %s) with %d task%s",
            prefs.daily_digest_time,
            next_at.isoformat(timespec="minutes"),
            task_count,
            "" if task_count == 1 else "s",
        )
        return notification_id

    async def show_countdown_notification(self, task_name: str, minutes_remaining: int) -> None:
        """Silent progress notification for users who asked for visual-only alerts."""
        prefs = await self._preferences.get_preferences()
        if not prefs.enabled or not prefs.visual_only:
            return
        kind = NotificationType.COUNTDOWN
        if await self._rate_limited(kind, prefs):
            return
        content = NotificationContent(
            title=self._messages.title(kind, task_name=task_name),
            body=self._messages.select(kind, count=minutes_remaining),
            sound=False,
            data=NotificationPayload(type=kind, task_name=task_name),
        )
        try:
            await self._gateway.schedule_immediate(content)
        except Exception:
            log.warning("Error showing countdown notification", exc_info=True)
            return
        await self._record(kind)

    # ------------------------------------------------------------------
    # Cancelling and querying
    # ------------------------------------------------------------------

    async def cancel_notification(self, notification_id: str) -> None:
        try:
            await self._gateway.cancel(notification_id)
        except Exception:
            log.warning("Error cancelling notification %s", notification_id, exc_info=True)

    async def cancel_all_notifications(self) -> None:
        try:
            await self._gateway.cancel_all()
        except Exception:
            log.warning("Error cancelling all notifications", exc_info=True)

    async def _cancel_matching(
        self,
        matches: Callable[[ScheduledNotification], bool],
        what: str,
    ) -> bool:
        """Cancel every match. Returns False if any of them may still be pending."""
        try:
            scheduled = await self._gateway.list_scheduled()
        except Exception:
            log.warning("Error listing notifications to cancel %s", what, exc_info=True)
            return False
        ok = True
        for notification in scheduled:
            if not matches(notification):
                continue
            try:
                await self._gateway.cancel(notification.id)
            except Exception:
                log.warning("Error cancelling %s notification %s", what, notification.id, exc_info=True)
                ok = False
        return ok

    async def cancel_task_notifications(self, task_id: str) -> bool:
        return await self._cancel_matching(
            lambda n: n.content.data.task_id == task_id,
            f"task {task_id}",
        )

    async def cancel_daily_digest(self) -> bool:
        return await self._cancel_matching(
            lambda n: n.type is NotificationType.DAILY_DIGEST,
            "daily digest",
        )

    async def get_scheduled_notifications(self) -> list[ScheduledNotification]:
        try:
            return list(await self._gateway.list_scheduled())
        except Exception:
            log.warning("Error getting scheduled notifications", exc_info=True)
            return []
