"""Positive, encouraging notification messages.

Each notification type has a fixed pool of templates.  A template is picked
at random and its placeholders are filled in:

* ``{taskName}`` -- the task's name
* ``{count}`` -- a number, as text
* ``{s}`` -- plural suffix for ``{count}`` ("" for one, "s" otherwise)
"""

from __future__ import annotations

import random
from typing import Optional

from taskblast.models import NotificationType

MESSAGE_POOLS: dict[NotificationType, tuple[str, ...]] = {
    NotificationType.TASK_REMINDER: (
        "Time to start {taskName}! You've got this! 💪",
        "Ready to tackle {taskName}? Let's go! 🚀",
        "{taskName} is coming up! You're doing great! ⭐",
        "Gentle reminder: {taskName} is starting soon! 🌟",
    ),
    NotificationType.TIMER_COMPLETE: (
        "Amazing work! You completed {taskName}! 🎉",
        "Great job! Time for your game break! 🎮",
        "You did it! {taskName} is complete! ⭐",
        "Awesome! You finished {taskName}! Time to play! 🌟",
    ),
    NotificationType.SESSION_START: (
        "Starting your session! You've got this! 💪",
        "Let's do this! Session starting now! 🚀",
        "Session time! You're going to do great! ⭐",
    ),
    NotificationType.DAILY_DIGEST: (
        "You have {count} task{s} waiting! Ready to tackle them? 📋",
        "{count} task{s} on your list today! You've got this! 💪",
        "Task check-in: {count} task{s} to complete! Let's go! 🚀",
        "Friendly reminder: {count} task{s} ready for you! ⭐",
    ),
    NotificationType.COUNTDOWN: ("{count} minute{s} remaining",),
}

TITLES: dict[NotificationType, str] = {
    NotificationType.TASK_REMINDER: "Task Reminder",
    NotificationType.TIMER_COMPLETE: "✅ Session Complete!",
    NotificationType.SESSION_START: "🚀 Session Starting",
    NotificationType.DAILY_DIGEST: "📋 TaskBlast Reminder",
    NotificationType.COUNTDOWN: "⏱️ {taskName}",
}

ALL_TASKS_COMPLETE = "Great job! All tasks complete! Time to add new ones? 🌟"


def plural_suffix(count: int) -> str:
    return "" if count == 1 else "s"


def render(template: str, *, task_name: Optional[str] = None, count: Optional[int] = None) -> str:
    """Fill in a template's placeholders. Unused placeholders are left alone."""
    text = template
    if task_name is not None:
        text = text.replace("{taskName}", task_name)
    if count is not None:
        text = text.replace("{count}", str(count)).replace("{s}", plural_suffix(count))
    return text


class MessageSelector:
    """Picks and renders messages; pass a seeded ``random.Random`` for repeatable picks."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        pools: Optional[dict[NotificationType, tuple[str, ...]]] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._pools = pools or MESSAGE_POOLS

    def pool(self, kind: NotificationType) -> tuple[str, ...]:
        return self._pools[kind]

    def pick(self, kind: NotificationType) -> str:
        """Return a raw template from the pool for ``kind``."""
        return self._rng.choice(self.pool(kind))

    def select(
        self,
        kind: NotificationType,
        *,
        task_name: Optional[str] = None,
        count: Optional[int] = None,
    ) -> str:
        return render(self.pick(kind), task_name=task_name, count=count)

    def title(self, kind: NotificationType, *, task_name: Optional[str] = None) -> str:
        return render(TITLES[kind], task_name=task_name)
