"""TaskBlast CLI -- focus sessions and gentle reminders from the terminal."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Optional

import typer

from taskblast import config as cfg
from taskblast import db, display
from taskblast.gateway import ConsoleHaptics, LocalNotificationGateway
from taskblast.logging_setup import setup_logging
from taskblast.models import INFINITE_CYCLES, ReminderTiming, TaskCreate, TimerConfig, TimerState
from taskblast.notifications import NotificationPolicy
from taskblast.preferences import PreferenceStore
from taskblast.scheduler import AsyncioScheduler
from taskblast.store import JsonFileStore
from taskblast.timer import CountdownTimer, format_time

app = typer.Typer(
    name="taskblast",
    help="Focus timer with gentle, preference-aware notifications.",
    no_args_is_help=True,
)
prefs_app = typer.Typer(help="Show or change notification preferences.", no_args_is_help=True)
app.add_typer(prefs_app, name="prefs")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    setup_logging(verbose)


def _preferences() -> PreferenceStore:
    return PreferenceStore(JsonFileStore(cfg.get_store_path()))


def _policy() -> NotificationPolicy:
    store = JsonFileStore(cfg.get_store_path())
    return NotificationPolicy(
        PreferenceStore(store),
        LocalNotificationGateway(store),
        haptics=ConsoleHaptics(),
        rate_store=store,
    )


# ---------------------------------------------------------------------------
# Tasks & focus
# ---------------------------------------------------------------------------


@app.command()
def add(
    title: str = typer.Argument(..., help="What do you need to do?"),
    cycles: int = typer.Option(1, "--cycles", "-c", help="Focus cycles to finish it (-1 = endless)"),
) -> None:
    """Add a task to focus on."""
    if cycles != INFINITE_CYCLES and cycles < 1:
        display.print_warning("Cycles must be at least 1, or -1 for endless.")
        raise typer.Exit(1)
    conn = db.get_connection()
    task = db.add_task(conn, TaskCreate(title=title, cycles=cycles))
    display.print_success(f"Added task #{task.id}: {task.title}")
    conn.close()


@app.command(name="list")
def list_tasks(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include completed tasks"),
) -> None:
    """List tasks."""
    conn = db.get_connection()
    tasks = db.list_tasks(conn) if show_all else db.list_open_tasks(conn)
    conn.close()
    if not tasks:
        display.print_info("No tasks. Add one with: taskblast add \"My task\"")
        return
    for task in tasks:
        display.print_task(task)


async def _run_focus(timer_config: TimerConfig, conn: Any) -> CountdownTimer:
    """Run one countdown to completion with a live progress bar."""
    scheduler = AsyncioScheduler()
    finished = asyncio.Event()
    progress = display.create_timer_progress()
    policy = _policy()
    total = timer_config.work_minutes * 60

    with progress:
        bar = progress.add_task(
            timer_config.task_name,
            total=total,
            clock=format_time(total),
            state=TimerState.RUNNING.value,
        )

        def on_change(session: Any) -> None:
            progress.update(
                bar,
                completed=session.total_duration - session.remaining,
                clock=format_time(session.remaining),
                state=session.state.value,
            )
            if session.state is TimerState.FINISHED:
                finished.set()
            elif session.state is TimerState.RUNNING and session.remaining % 60 == 0:
                # whole minute left; a no-op unless visual-only alerts are on
                scheduler.spawn(
                    policy.show_countdown_notification(
                        timer_config.task_name, session.remaining // 60
                    ),
                    name="countdown",
                )

        timer = CountdownTimer(
            timer_config,
            scheduler=scheduler,
            notifier=policy,
            task_store=db.SqliteTaskStore(conn),
            on_change=on_change,
        )
        timer.start()
        try:
            await finished.wait()
        finally:
            timer.close()
    try:
        await scheduler.drain()
    finally:
        scheduler.close()
    return timer


@app.command()
def focus(
    minutes: int = typer.Option(25, "--minutes", "-m", min=1, max=240, help="Focus duration in minutes"),
    task_id: Optional[int] = typer.Option(None, "--task", "-t", help="Task ID to focus on"),
    background: bool = typer.Option(
        False, "--allow-background", help="Keep counting while the app is in the background"
    ),
) -> None:
    """Start a focus countdown."""
    conn = db.get_connection()
    name = "Work Session"
    cycles: Optional[int] = 1
    if task_id is not None:
        task = db.get_task(conn, task_id)
        if task is None:
            display.print_warning(f"Task #{task_id} not found.")
            conn.close()
            raise typer.Exit(1)
        if task.completed:
            display.print_info(f'"{task.title}" is already complete. Focusing anyway.')
        name, cycles = task.title, task.cycles
    display.print_info(f'Focusing on "{name}" for {minutes} min.')

    timer_config = TimerConfig(
        task_name=name,
        work_minutes=minutes,
        cycles=cycles,
        task_id=None if task_id is None else str(task_id),
        allow_background_run=background,
    )
    try:
        timer = asyncio.run(_run_focus(timer_config, conn))
    except KeyboardInterrupt:
        display.console.print("\n[yellow]Timer stopped early.[/yellow]")
        conn.close()
        raise typer.Exit(1)

    if task_id is not None:
        display.print_info(f"Cycles completed: {timer.session.completed_cycles}")
        if timer.task_completed:
            display.print_success("Task complete!")
    conn.close()


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@app.command()
def remind(
    task_id: str = typer.Argument(..., help="Task the reminder belongs to"),
    at: datetime = typer.Option(
        ..., "--at", formats=["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"], help="Task start time"
    ),
    name: str = typer.Option("your task", "--name", "-n", help="Task name for the message"),
    minutes: Optional[int] = typer.Option(
        None, "--minutes", "-m", min=0, help="Minutes before start (default: preference)"
    ),
) -> None:
    """Schedule a reminder before a task starts."""
    policy = _policy()
    notification_id = asyncio.run(policy.schedule_task_reminder(task_id, name, at, minutes))
    if notification_id is None:
        display.print_warning("No reminder scheduled (disabled, hourly cap reached, or the time has passed).")
        raise typer.Exit(1)
    if minutes is None:
        minutes = int(asyncio.run(_preferences().get_preferences()).reminder_timing)
    display.print_reminder_scheduled(notification_id, at, minutes)


@app.command()
def digest(
    count: Optional[int] = typer.Option(
        None, "--count", min=0, help="Task count to report (default: open tasks)"
    ),
) -> None:
    """Schedule (or replace) the daily task digest."""
    if count is None:
        conn = db.get_connection()
        count = len(db.list_open_tasks(conn))
        conn.close()
    notification_id = asyncio.run(_policy().schedule_daily_digest(count))
    if notification_id is None:
        display.print_warning("No daily digest scheduled (disabled, or the hourly cap was reached).")
        raise typer.Exit(1)
    display.print_success(f"Daily digest scheduled ({count} task{'s' if count != 1 else ''}).")


@app.command()
def scheduled() -> None:
    """List pending notifications."""
    display.print_scheduled(asyncio.run(_policy().get_scheduled_notifications()))


@app.command()
def cancel(
    notification_id: Optional[str] = typer.Argument(None, help="Notification ID"),
    task_id: Optional[str] = typer.Option(None, "--task", "-t", help="Cancel everything for a task"),
    daily_digest: bool = typer.Option(False, "--digest", help="Cancel the daily digest"),
    all_notifications: bool = typer.Option(False, "--all", "-a", help="Cancel everything"),
) -> None:
    """Cancel scheduled notifications."""
    policy = _policy()
    if all_notifications:
        asyncio.run(policy.cancel_all_notifications())
        display.print_success("Cancelled all notifications.")
    elif daily_digest:
        asyncio.run(policy.cancel_daily_digest())
        display.print_success("Cancelled the daily digest.")
    elif task_id is not None:
        asyncio.run(policy.cancel_task_notifications(task_id))
        display.print_success(f"Cancelled notifications for task {task_id}.")
    elif notification_id is not None:
        asyncio.run(policy.cancel_notification(notification_id))
        display.print_success(f"Cancelled {notification_id}.")
    else:
        display.print_info("Give a notification ID, or use --task, --digest or --all.")


@app.command()
def permissions() -> None:
    """Check (and request) permission to show notifications."""
    if asyncio.run(_policy().request_permissions()):
        display.print_success("Notifications are allowed.")
    else:
        display.print_warning("Notifications are not allowed.")
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


@prefs_app.command("show")
def prefs_show() -> None:
    """Show current notification preferences."""
    display.print_preferences(asyncio.run(_preferences().get_preferences()))


@prefs_app.command("set")
def prefs_set(
    enabled: Optional[bool] = typer.Option(None, "--enable/--disable", help="All notifications"),
    sound: Optional[bool] = typer.Option(None, "--sound/--no-sound"),
    vibration: Optional[bool] = typer.Option(None, "--vibration/--no-vibration"),
    visual_only: Optional[bool] = typer.Option(None, "--visual-only/--no-visual-only"),
    repeat: Optional[bool] = typer.Option(None, "--repeat/--no-repeat"),
    reminder: Optional[int] = typer.Option(None, "--reminder", help="Minutes before start: 0, 5, 10, 15 or 30"),
    max_per_hour: Optional[int] = typer.Option(None, "--max-per-hour", min=1),
    daily_digest: Optional[bool] = typer.Option(None, "--digest/--no-digest"),
    digest_time: Optional[str] = typer.Option(None, "--digest-time", help="HH:MM, 24-hour"),
) -> None:
    """Change notification preferences; options left out keep their value."""
    partial: dict[str, Any] = {
        "enabled": enabled,
        "sound_enabled": sound,
        "vibration_enabled": vibration,
        "visual_only": visual_only,
        "repeat_notifications": repeat,
        "reminder_timing": reminder,
        "max_notifications_per_hour": max_per_hour,
        "daily_digest_enabled": daily_digest,
        "daily_digest_time": digest_time,
    }
    partial = {k: v for k, v in partial.items() if v is not None}
    if not partial:
        display.print_info("Nothing to change. See --help for options.")
        return
    if reminder is not None and reminder not in {t.value for t in ReminderTiming}:
        display.print_warning("Reminder must be one of 0, 5, 10, 15 or 30 minutes.")
        raise typer.Exit(1)

    store = _preferences()
    try:
        saved = asyncio.run(store.save_preferences(partial))
    except ValueError as exc:
        display.print_warning(f"Invalid preference: {exc}")
        raise typer.Exit(1)
    if not saved:
        display.print_warning("Preferences could not be saved.")
        raise typer.Exit(1)
    display.print_preferences(asyncio.run(store.get_preferences()))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@app.command()
def config(
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Set a custom task database path"),
    store_path: Optional[str] = typer.Option(None, "--store-path", help="Set a custom preferences store path"),
    reset: bool = typer.Option(False, "--reset", help="Reset to default local paths"),
    show: bool = typer.Option(False, "--show", help="Show current config"),
) -> None:
    """Configure where your data is stored."""
    if db_path:
        result = cfg.set_db_path(db_path)
        display.print_success(f"Database path set to: {result.db_path}")
    elif store_path:
        result = cfg.set_store_path(store_path)
        display.print_success(f"Store path set to: {result.store_path}")
    elif reset:
        cfg.reset_paths()
        display.print_success("Reset to default local paths.")
    elif show:
        display.print_info(f"Database: {cfg.get_db_path()}")
        display.print_info(f"Store: {cfg.get_store_path()}")
    else:
        display.print_info("Use --db-path, --store-path, --reset, or --show.")
