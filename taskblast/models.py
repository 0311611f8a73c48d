"""Pydantic models -- single source of truth for all data types."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Sentinel cap: rate limiting exists but never triggers with the defaults.
UNLIMITED_PER_HOUR = 9999

INFINITE_CYCLES = -1


class NotificationType(str, enum.Enum):
    """Closed set of notification categories."""

    TASK_REMINDER = "TASK_REMINDER"
    TIMER_COMPLETE = "TIMER_COMPLETE"
    SESSION_START = "SESSION_START"
    DAILY_DIGEST = "DAILY_DIGEST"
    COUNTDOWN = "COUNTDOWN"


class ReminderTiming(enum.IntEnum):
    """Minutes before a task's start time at which its reminder fires."""

    AT_START_TIME = 0
    FIVE_MINUTES = 5
    TEN_MINUTES = 10
    FIFTEEN_MINUTES = 15
    THIRTY_MINUTES = 30


class AppVisibility(str, enum.Enum):
    """App visibility as reported by the host platform."""

    FOREGROUND = "foreground"
    BACKGROUND = "background"
    INACTIVE = "inactive"


class PermissionStatus(str, enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


class TimerState(str, enum.Enum):
    """Countdown lifecycle states."""

    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


class _CamelModel(BaseModel):
    """Base for records persisted or exchanged with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NotificationPreferences(_CamelModel):
    """User notification preferences (persisted as one JSON object)."""

    enabled: bool = True
    sound_enabled: bool = False  # silent by default, less overwhelm
    vibration_enabled: bool = True
    visual_only: bool = False
    reminder_timing: ReminderTiming = ReminderTiming.FIVE_MINUTES
    repeat_notifications: bool = False
    max_notifications_per_hour: int = Field(default=UNLIMITED_PER_HOUR, ge=1)
    daily_digest_enabled: bool = True
    daily_digest_time: str = Field(default="15:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")

    @property
    def digest_hour_minute(self) -> tuple[int, int]:
        hours, minutes = self.daily_digest_time.split(":")
        return int(hours), int(minutes)


class NotificationPayload(_CamelModel):
    """Data attached to a notification, used for filtering and routing taps."""

    type: NotificationType
    task_id: Optional[str] = None
    task_name: Optional[str] = None
    task_count: Optional[int] = Field(default=None, ge=0)


class NotificationContent(_CamelModel):
    """What the user sees, plus the payload."""

    title: str
    body: str
    sound: bool = False
    priority: Literal["high", "default"] = "default"
    data: NotificationPayload


class ImmediateTrigger(BaseModel):
    kind: Literal["immediate"] = "immediate"


class DateTrigger(BaseModel):
    kind: Literal["date"] = "date"
    at: datetime


class DailyTrigger(BaseModel):
    kind: Literal["daily"] = "daily"
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)


Trigger = Annotated[
    Union[ImmediateTrigger, DateTrigger, DailyTrigger],
    Field(discriminator="kind"),
]


class ScheduledNotification(_CamelModel):
    """A pending notification as tracked by the gateway."""

    id: str
    content: NotificationContent
    trigger: Trigger

    @property
    def type(self) -> NotificationType:
        return self.content.data.type


class TimerConfig(_CamelModel):
    """Session parameters handed to the timer screen."""

    task_name: str = Field(default="Work Session", min_length=1)
    work_minutes: int = Field(default=25, gt=0, le=240)
    play_minutes: int = Field(default=5, gt=0, le=120)
    cycles: Optional[int] = Field(default=1, ge=1)
    task_id: Optional[str] = None
    allow_background_run: bool = False

    @field_validator("cycles", mode="before")
    @classmethod
    def _infinite_cycles(cls, value: object) -> object:
        # -1 is how the task list encodes "repeat forever"
        if value == INFINITE_CYCLES:
            return None
        return value


class TimerSession(BaseModel):
    """Mutable state of a single countdown."""

    model_config = ConfigDict(validate_assignment=True)

    total_duration: int = Field(gt=0)
    remaining: int = Field(ge=0)
    state: TimerState = TimerState.RUNNING
    backgrounded_at: Optional[float] = None
    allow_background_run: bool = False
    task_id: Optional[str] = None
    cycle_target: Optional[int] = Field(default=1, ge=1)  # None = infinite
    completed_cycles: int = Field(default=0, ge=0)

    @classmethod
    def from_config(cls, config: TimerConfig) -> TimerSession:
        total = config.work_minutes * 60
        return cls(
            total_duration=total,
            remaining=total,
            allow_background_run=config.allow_background_run,
            task_id=config.task_id,
            cycle_target=config.cycles,
        )


class Task(BaseModel):
    """A task as the local task store sees it."""

    id: int
    title: str
    cycles: Optional[int] = 1  # None = infinite
    completed_cycles: int = Field(default=0, ge=0)
    completed: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def cycles_met(self) -> bool:
        return self.cycles is not None and self.completed_cycles >= self.cycles


class TaskCreate(BaseModel):
    """Input model for creating a new task."""

    title: str = Field(min_length=1, max_length=500)
    cycles: Optional[int] = Field(default=1, ge=1)

    @field_validator("cycles", mode="before")
    @classmethod
    def _infinite_cycles(cls, value: object) -> object:
        if value == INFINITE_CYCLES:
            return None
        return value


class AppConfig(BaseModel):
    """Application configuration (persisted to ~/.config/taskblast/config.json)."""

    db_path: Optional[str] = None  # None = use default (~/.local/share/taskblast/)
    store_path: Optional[str] = None
