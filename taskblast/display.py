"""Rich terminal formatting helpers."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table
from rich.text import Text

from taskblast.models import (
    DailyTrigger,
    DateTrigger,
    NotificationContent,
    NotificationPreferences,
    ScheduledNotification,
    Task,
)

console = Console()


def print_notification(content: NotificationContent) -> None:
    """Show an immediate notification as a styled panel."""
    text = Text(content.body, justify="center")
    console.print(Panel(text, title=content.title, border_style="magenta", padding=(1, 4)))


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[blue]{message}[/blue]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]{message}[/yellow]")


def print_task(task: Task) -> None:
    cycles = "∞" if task.cycles is None else str(task.cycles)
    icon = "[x]" if task.completed else "[ ]"
    style = "green" if task.completed else "bold cyan"
    console.print(
        f"{icon} [bold]#{task.id}[/bold] {task.title} ({task.completed_cycles}/{cycles} cycles)",
        style=style,
    )


def describe_trigger(notification: ScheduledNotification) -> str:
    trigger = notification.trigger
    if isinstance(trigger, DateTrigger):
        return trigger.at.strftime("%Y-%m-%d %H:%M")
    if isinstance(trigger, DailyTrigger):
        return f"daily at {trigger.hour:02d}:{trigger.minute:02d}"
    return "now"


def print_scheduled(notifications: list[ScheduledNotification]) -> None:
    """Print pending notifications in a table."""
    if not notifications:
        console.print(Panel("No scheduled notifications.", title="Scheduled", border_style="dim"))
        return

    table = Table(show_header=True, box=None, pad_edge=False)
    table.add_column("id", style="dim")
    table.add_column("type")
    table.add_column("when")
    table.add_column("message")
    for n in notifications:
        table.add_row(n.id, n.type.value, describe_trigger(n), n.content.body)
    console.print(Panel(table, title="Scheduled", border_style="blue"))


def print_preferences(prefs: NotificationPreferences) -> None:
    """Print the preferences record as a two-column table."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("key", style="bold")
    table.add_column("value")
    for key, value in prefs.model_dump(mode="json", by_alias=True).items():
        table.add_row(key, str(value))
    console.print(Panel(table, title="Notification preferences", border_style="green"))


def print_reminder_scheduled(notification_id: str, start: datetime, minutes: int) -> None:
    console.print(
        f"[green]Reminder {notification_id} set for {minutes} min before "
        f"{start.strftime('%Y-%m-%d %H:%M')}.[/green]"
    )


def create_timer_progress() -> Progress:
    """Create a Rich progress bar for the countdown."""
    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=40),
        TextColumn("{task.fields[clock]}"),
        TextColumn("[dim]{task.fields[state]}"),
        console=console,
    )
