"""App visibility tracking."""

from __future__ import annotations

import logging
from typing import Optional

from taskblast.models import AppVisibility
from taskblast.ports import Unsubscribe, VisibilityListener, VisibilitySignal

log = logging.getLogger(__name__)


class StaticVisibilitySignal:
    """Visibility source for hosts without a background state (the terminal)."""

    def subscribe(self, on_change: VisibilityListener) -> Unsubscribe:
        return lambda: None


class VisibilityMonitor:
    """Remembers the latest visibility state and re-broadcasts changes.

    The monitor is itself a ``VisibilitySignal``, so the timer can subscribe
    to it instead of the raw platform signal.
    """

    def __init__(
        self,
        signal: VisibilitySignal,
        initial: AppVisibility = AppVisibility.FOREGROUND,
    ) -> None:
        self._signal = signal
        self._current = initial
        self._listeners: list[VisibilityListener] = []
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def current(self) -> AppVisibility:
        return self._current

    @property
    def is_foreground(self) -> bool:
        return self._current is AppVisibility.FOREGROUND

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._signal.subscribe(self._on_change)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def subscribe(self, on_change: VisibilityListener) -> Unsubscribe:
        self._listeners.append(on_change)

        def unsubscribe() -> None:
            if on_change in self._listeners:
                self._listeners.remove(on_change)

        return unsubscribe

    def _on_change(self, state: AppVisibility) -> None:
        state = AppVisibility(state)
        log.debug("App visibility %s -> %s", self._current.value, state.value)
        self._current = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                log.exception("Visibility listener failed")
