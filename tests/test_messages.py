"""Tests for notification message selection."""

from __future__ import annotations

import random

import pytest

from taskblast.messages import (
    ALL_TASKS_COMPLETE,
    MESSAGE_POOLS,
    TITLES,
    MessageSelector,
    plural_suffix,
    render,
)
from taskblast.models import NotificationType


class TestPools:
    def test_every_type_has_messages_and_a_title(self) -> None:
        for kind in NotificationType:
            assert MESSAGE_POOLS[kind]
            assert TITLES[kind]

    def test_reminder_pool_mentions_task(self) -> None:
        for template in MESSAGE_POOLS[NotificationType.TASK_REMINDER]:
            assert "{taskName}" in template

    def test_digest_pool_mentions_count(self) -> None:
        for template in MESSAGE_POOLS[NotificationType.DAILY_DIGEST]:
            assert "{count}" in template
            assert "{s}" in template


class TestRender:
    def test_task_name(self) -> None:
        assert render("Go {taskName}!", task_name="Reading") == "Go Reading!"

    @pytest.mark.parametrize(
        ("count", "expected"),
        [(0, "0 tasks"), (1, "1 task"), (2, "2 tasks")],
    )
    def test_count_and_plural(self, count: int, expected: str) -> None:
        assert render("{count} task{s}", count=count) == expected

    def test_unused_placeholders_left_alone(self) -> None:
        assert render("{count} task{s}") == "{count} task{s}"

    def test_plural_suffix(self) -> None:
        assert plural_suffix(1) == ""
        assert plural_suffix(5) == "s"


class TestMessageSelector:
    def test_select_comes_from_pool(self) -> None:
        selector = MessageSelector(random.Random(1))
        pool = {
            render(t, task_name="Math")
            for t in MESSAGE_POOLS[NotificationType.TASK_REMINDER]
        }
        for _ in range(20):
            assert selector.select(NotificationType.TASK_REMINDER, task_name="Math") in pool

    def test_seeded_picks_repeat(self) -> None:
        a = MessageSelector(random.Random(42))
        b = MessageSelector(random.Random(42))
        picks_a = [a.pick(NotificationType.TIMER_COMPLETE) for _ in range(10)]
        picks_b = [b.pick(NotificationType.TIMER_COMPLETE) for _ in range(10)]
        assert picks_a == picks_b

    def test_custom_pools(self) -> None:
        pools = {kind: ("only one",) for kind in NotificationType}
        selector = MessageSelector(pools=pools)
        assert selector.select(NotificationType.SESSION_START) == "only one"

    def test_countdown_title_uses_task_name(self) -> None:
        selector = MessageSelector()
        assert selector.title(NotificationType.COUNTDOWN, task_name="Essay") == "⏱️ Essay"
        assert selector.select(NotificationType.COUNTDOWN, count=1) == "1 minute remaining"

    def test_all_complete_message(self) -> None:
        assert "All tasks complete" in ALL_TASKS_COMPLETE
