"""Focus countdown: a small state machine driven by a 1 s tick.

States are running, paused and finished.  Only running <-> paused goes both
ways; finished stays finished until :meth:`CountdownTimer.reset` starts a
fresh session.

When the app is backgrounded the tick is suspended.  If the session allows
running in the background, the time spent away is subtracted on return;
otherwise the session pauses.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Optional

from taskblast.models import AppVisibility, TimerConfig, TimerSession, TimerState
from taskblast.ports import TaskStore, TimerCompleteNotifier, Unsubscribe, VisibilitySignal
from taskblast.scheduler import Scheduler, TimerHandle

log = logging.getLogger(__name__)

TICK_SECONDS = 1.0
TAP_WINDOW_SECONDS = 0.5
TAPS_FOR_BYPASS = 3
ADMIN_BYPASS_SECONDS = 3


def format_time(seconds: int) -> str:
    """Format seconds as MM:SS."""
    mins, secs = divmod(max(0, seconds), 60)
    return f"{mins:02d}:{secs:02d}"


class CountdownTimer:
    """One focus session.

    Side effects of finishing (cycle bookkeeping, the completion
    notification) run fire-and-forget on the scheduler; nothing they do can
    change the timer's state.
    """

    def __init__(
        self,
        config: TimerConfig,
        *,
        scheduler: Scheduler,
        notifier: Optional[TimerCompleteNotifier] = None,
        task_store: Optional[TaskStore] = None,
        visibility: Optional[VisibilitySignal] = None,
        clock: Callable[[], float] = time.time,
        on_change: Optional[Callable[[TimerSession], None]] = None,
    ) -> None:
        self.config = config
        self.session = TimerSession.from_config(config)
        self.task_completed = False
        self._scheduler = scheduler
        self._notifier = notifier
        self._task_store = task_store
        self._clock = clock
        self._on_change = on_change
        self._tick_handle: Optional[TimerHandle] = None
        self._tap_handle: Optional[TimerHandle] = None
        self._tap_count = 0
        self._closed = False
        self._unsubscribe: Optional[Unsubscribe] = None
        if visibility is not None:
            self._unsubscribe = visibility.subscribe(self.handle_visibility)

    # -- Read-only views --

    @property
    def state(self) -> TimerState:
        return self.session.state

    @property
    def remaining(self) -> int:
        return self.session.remaining

    @property
    def progress(self) -> float:
        """Fraction of time left: 1.0 at the start, 0.0 when finished."""
        return self.session.remaining / self.session.total_duration

    @property
    def display(self) -> str:
        return format_time(self.session.remaining)

    @property
    def ticking(self) -> bool:
        return self._tick_handle is not None and self._tick_handle.active

    @property
    def closed(self) -> bool:
        return self._closed

    # -- Lifecycle --

    def start(self) -> None:
        """Begin counting down and load the task's cycle progress."""
        self._check_open()
        if self.session.state is TimerState.RUNNING:
            self._start_ticking()
        task_id = self.session.task_id
        if task_id is not None and self._task_store is not None:
            self._scheduler.spawn(self._load_task_progress(task_id), name=f"load-task-{task_id}")

    def reset(self) -> None:
        """Replace the session with a fresh running one (after a break)."""
        self._check_open()
        self._clear_taps()
        completed_cycles = self.session.completed_cycles
        self.session = TimerSession.from_config(self.config)
        self.session.completed_cycles = completed_cycles
        self._start_ticking()
        self._changed()

    def close(self) -> None:
        """Cancel every timer this session owns and stop listening for visibility."""
        self._stop_ticking()
        self._clear_taps()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("timer has been closed")

    # -- Ticking --

    def _start_ticking(self) -> None:
        self._stop_ticking()
        self._tick_handle = self._scheduler.call_every(TICK_SECONDS, self.tick)

    def _stop_ticking(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def tick(self) -> None:
        if self._closed or self.session.state is not TimerState.RUNNING:
            return
        self.session.remaining = max(0, self.session.remaining - 1)
        if self.session.remaining == 0:
            self._finish()
        else:
            self._changed()

    def toggle_pause(self) -> None:
        if self._closed or self.session.state is TimerState.FINISHED:
            return
        if self.session.state is TimerState.RUNNING:
            self.session.state = TimerState.PAUSED
            self.session.backgrounded_at = None
            self._stop_ticking()
        else:
            self.session.state = TimerState.RUNNING
            self._start_ticking()
        self._changed()

    # -- Visibility --

    def handle_visibility(self, visibility: AppVisibility) -> None:
        if self._closed:
            return
        if AppVisibility(visibility) is AppVisibility.FOREGROUND:
            self._on_foreground()
        else:
            self._on_background()

    def _on_background(self) -> None:
        if self.session.state is not TimerState.RUNNING:
            return
        if self.session.allow_background_run:
            # background and inactive can both arrive; the first one counts
            if self.session.backgrounded_at is None:
                self.session.backgrounded_at = self._clock()
            self._stop_ticking()
            return
        self.session.state = TimerState.PAUSED
        self.session.backgrounded_at = None
        self._stop_ticking()
        log.debug("App left the foreground; timer paused")
        self._changed()

    def _on_foreground(self) -> None:
        started = self.session.backgrounded_at
        if started is None:
            return
        self.session.backgrounded_at = None
        if self.session.state is not TimerState.RUNNING:
            return
        elapsed = max(0, math.floor(self._clock() - started))
        self.session.remaining = max(0, self.session.remaining - elapsed)
        log.debug("Back in the foreground after %ds; %ds left", elapsed, self.session.remaining)
        if self.session.remaining == 0:
            self._finish()
            return
        self._start_ticking()
        self._changed()

    # -- Admin bypass --

    def register_tap(self) -> bool:
        """Count a tap; the third within the window cuts the countdown to 3 s."""
        if self._closed:
            return False
        self._tap_count += 1
        if self._tap_count >= TAPS_FOR_BYPASS:
            self._clear_taps()
            self.session.remaining = min(ADMIN_BYPASS_SECONDS, self.session.total_duration)
            log.info("Admin bypass: remaining time set to %ds", self.session.remaining)
            self._changed()
            return True
        if self._tap_handle is None:
            self._tap_handle = self._scheduler.call_later(TAP_WINDOW_SECONDS, self._expire_taps)
        return False

    def _expire_taps(self) -> None:
        self._tap_handle = None
        self._tap_count = 0

    def _clear_taps(self) -> None:
        if self._tap_handle is not None:
            self._tap_handle.cancel()
            self._tap_handle = None
        self._tap_count = 0

    # -- Completion --

    def _finish(self) -> None:
        if self.session.state is TimerState.FINISHED:
            return
        self.session.state = TimerState.FINISHED
        self.session.remaining = 0
        self.session.backgrounded_at = None
        self._stop_ticking()
        self._changed()
        self._scheduler.spawn(self._on_complete(), name="timer-complete")

    async def _on_complete(self) -> None:
        task_id = self.session.task_id
        if task_id is not None and self._task_store is not None:
            await self._record_cycle(task_id)
        if self._notifier is not None:
            try:
                await self._notifier.notify_timer_complete(self.config.task_name, is_break_time=False)
            except Exception:
                log.warning("Completion notification failed", exc_info=True)

    async def _record_cycle(self, task_id: str) -> None:
        assert self._task_store is not None
        try:
            completed = await self._task_store.increment_completed_cycles(task_id)
            self.session.completed_cycles = completed
        except Exception:
            log.warning("Failed to increment completed cycles for task %s", task_id, exc_info=True)
            return
        target = self.session.cycle_target
        if target is None or completed < target:
            return
        try:
            await self._task_store.mark_completed(task_id)
        except Exception:
            log.warning("Failed to mark task %s completed", task_id, exc_info=True)
            return
        self.task_completed = True
        log.info("Task %s completed after %d cycle%s", task_id, completed, "" if completed == 1 else "s")

    async def _load_task_progress(self, task_id: str) -> None:
        assert self._task_store is not None
        try:
            task = await self._task_store.get_task(task_id)
        except Exception:
            log.warning("Failed to check task %s", task_id, exc_info=True)
            return
        if task is None:
            return
        # a completion that raced ahead of this load already has a newer count
        self.session.completed_cycles = max(self.session.completed_cycles, task.completed_cycles)
        self.task_completed = self.task_completed or task.completed
        self._changed()

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.session)
        except Exception:
            log.exception("Timer change listener failed")
