from __future__ import annotations

import random
from datetime import datetime

import pytest

from taskblast.messages import MessageSelector
from taskblast.models import AppVisibility
from taskblast.notifications import NotificationPolicy
from taskblast.preferences import PreferenceStore
from taskblast.visibility import VisibilityMonitor

from fakes import (
    FakeClock,
    FakeGateway,
    FakeHaptics,
    FakeKeyValueStore,
    FakeScheduler,
    FakeVisibilitySignal,
)

NOW = datetime(2025, 3, 10, 12, 0, 0)


class MutableNow:
    """Settable replacement for ``datetime.now``."""

    def __init__(self, value: datetime = NOW) -> None:
        self.value = value

    def __call__(self) -> datetime:
        return self.value


@pytest.fixture()
def now() -> MutableNow:
    return MutableNow()


@pytest.fixture()
def kv() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture()
def prefs(kv: FakeKeyValueStore) -> PreferenceStore:
    return PreferenceStore(kv)


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def haptics() -> FakeHaptics:
    return FakeHaptics()


@pytest.fixture()
def signal() -> FakeVisibilitySignal:
    return FakeVisibilitySignal()


@pytest.fixture()
def visibility(signal: FakeVisibilitySignal) -> VisibilityMonitor:
    monitor = VisibilityMonitor(signal, initial=AppVisibility.FOREGROUND)
    monitor.start()
    return monitor


@pytest.fixture()
def policy(
    prefs: PreferenceStore,
    gateway: FakeGateway,
    haptics: FakeHaptics,
    visibility: VisibilityMonitor,
    now: MutableNow,
) -> NotificationPolicy:
    return NotificationPolicy(
        prefs,
        gateway,
        haptics=haptics,
        visibility=visibility,
        messages=MessageSelector(random.Random(7)),
        now=now,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def scheduler(clock: FakeClock) -> FakeScheduler:
    return FakeScheduler(clock)
