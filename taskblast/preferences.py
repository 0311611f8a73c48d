"""Notification preferences: storage adapter and the shared preference service."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from taskblast.models import NotificationPreferences
from taskblast.ports import KeyValueStore, Unsubscribe

log = logging.getLogger(__name__)

PREFS_STORAGE_KEY = "@taskblast_notification_prefs"

DEFAULT_PREFERENCES = NotificationPreferences()

PreferencesListener = Callable[[NotificationPreferences], None]


def _to_aliases(partial: Mapping[str, Any]) -> dict[str, Any]:
    """Accept snake_case field names or camelCase keys; return camelCase."""
    fields = NotificationPreferences.model_fields
    out: dict[str, Any] = {}
    for key, value in partial.items():
        field = fields.get(key)
        out[(field.alias or to_camel(key)) if field is not None else key] = value
    return out


def _defaults_dump() -> dict[str, Any]:
    return DEFAULT_PREFERENCES.model_dump(mode="json", by_alias=True)


class PreferenceStore:
    """Reads and writes the single preferences record in a key-value store.

    Reads fail open: any problem loading the record yields the defaults.
    Writes fail silently: the error is logged and the update is lost.
    """

    def __init__(self, store: KeyValueStore, key: str = PREFS_STORAGE_KEY) -> None:
        self._store = store
        self._key = key

    async def get_preferences(self) -> NotificationPreferences:
        try:
            raw = await self._store.get_item(self._key)
        except Exception:
            log.warning("Could not read notification preferences; using defaults", exc_info=True)
            return DEFAULT_PREFERENCES.model_copy()
        if not raw:
            return DEFAULT_PREFERENCES.model_copy()
        try:
            stored = json.loads(raw)
            if not isinstance(stored, dict):
                raise ValueError(f"expected an object, got {type(stored).__name__}")
            return NotificationPreferences.model_validate({**_defaults_dump(), **stored})
        except (ValueError, ValidationError):
            log.warning("Stored notification preferences are unreadable; using defaults", exc_info=True)
            return DEFAULT_PREFERENCES.model_copy()

    async def save_preferences(self, partial: Mapping[str, Any]) -> bool:
        """Merge ``partial`` over the current record and persist it.

        Returns True when the write went through.  Invalid values raise
        ``ValidationError`` before anything is written.
        """
        current = await self.get_preferences()
        merged = NotificationPreferences.model_validate(
            {**current.model_dump(mode="json", by_alias=True), **_to_aliases(partial)}
        )
        try:
            await self._store.set_item(self._key, merged.model_dump_json(by_alias=True))
        except Exception:
            log.warning("Could not save notification preferences", exc_info=True)
            return False
        return True


class PreferenceService:
    """Single source of truth for preferences while the app is running.

    Call :meth:`init` once at startup, :meth:`subscribe` from anything that
    renders or depends on preferences, and :meth:`close` on shutdown.
    """

    def __init__(self, store: PreferenceStore) -> None:
        self._store = store
        self._current: Optional[NotificationPreferences] = None
        self._listeners: list[PreferencesListener] = []

    @property
    def store(self) -> PreferenceStore:
        return self._store

    @property
    def initialized(self) -> bool:
        return self._current is not None

    @property
    def current(self) -> NotificationPreferences:
        if self._current is None:
            raise RuntimeError("PreferenceService.init() has not been awaited")
        return self._current

    async def init(self) -> NotificationPreferences:
        self._current = await self._store.get_preferences()
        return self._current

    def subscribe(self, listener: PreferencesListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def update(self, partial: Mapping[str, Any]) -> NotificationPreferences:
        """Persist ``partial`` and publish whatever the store now holds."""
        await self._store.save_preferences(partial)
        self._current = await self._store.get_preferences()
        for listener in list(self._listeners):
            try:
                listener(self._current)
            except Exception:
                log.exception("Preference listener failed")
        return self._current

    def close(self) -> None:
        self._listeners.clear()
        self._current = None
