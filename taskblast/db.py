"""SQLite task store. All public functions return Pydantic models."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from taskblast.config import get_db_path as _config_get_db_path
from taskblast.models import Task, TaskCreate

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    title            TEXT    NOT NULL,
    cycles           INTEGER,
    completed_cycles INTEGER NOT NULL DEFAULT 0,
    completed        INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT    NOT NULL
);
"""


def _get_db_path() -> Path:
    """Return the database file path from config (or default)."""
    return _config_get_db_path()


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Open a connection and ensure the schema exists."""
    path = db_path or _get_db_path()
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.executescript(_SCHEMA)
    return conn


def _row_to_task(row: sqlite3.Row) -> Task:
    """Convert a database row to a Task model."""
    return Task(
        id=row["id"],
        title=row["title"],
        cycles=row["cycles"],
        completed_cycles=row["completed_cycles"],
        completed=bool(row["completed"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def add_task(conn: sqlite3.Connection, task_in: TaskCreate) -> Task:
    """Insert a new task and return it as a model."""
    cur = conn.execute(
        "INSERT INTO tasks (title, cycles, created_at) VALUES (?, ?, ?)",
        (task_in.title, task_in.cycles, datetime.now().isoformat()),
    )
    conn.commit()
    task = get_task(conn, cur.lastrowid)  # type: ignore[arg-type]
    assert task is not None
    return task


def get_task(conn: sqlite3.Connection, task_id: int) -> Optional[Task]:
    """Fetch a single task by ID."""
    row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    return _row_to_task(row) if row else None


def list_tasks(conn: sqlite3.Connection) -> list[Task]:
    """All tasks, oldest first."""
    rows = conn.execute("SELECT * FROM tasks ORDER BY created_at ASC").fetchall()
    return [_row_to_task(r) for r in rows]


def list_open_tasks(conn: sqlite3.Connection) -> list[Task]:
    """Tasks not yet completed, oldest first."""
    rows = conn.execute(
        "SELECT * FROM tasks WHERE completed = 0 ORDER BY created_at ASC"
    ).fetchall()
    return [_row_to_task(r) for r in rows]


def increment_completed_cycles(conn: sqlite3.Connection, task_id: int) -> int:
    """Add one finished cycle to a task. Returns the new count."""
    cur = conn.execute(
        "UPDATE tasks SET completed_cycles = completed_cycles + 1 WHERE id = ?",
        (task_id,),
    )
    if cur.rowcount == 0:
        raise LookupError(f"task #{task_id} not found")
    conn.commit()
    row = conn.execute("SELECT completed_cycles FROM tasks WHERE id = ?", (task_id,)).fetchone()
    return int(row["completed_cycles"])


def mark_completed(conn: sqlite3.Connection, task_id: int) -> Optional[Task]:
    """Mark a task as done."""
    conn.execute("UPDATE tasks SET completed = 1 WHERE id = ?", (task_id,))
    conn.commit()
    return get_task(conn, task_id)


class SqliteTaskStore:
    """Adapts the functions above to the async ``TaskStore`` port.

    Task ids travel as strings through the notification payloads; here they
    must parse as integers.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def get_task(self, task_id: str) -> Optional[Task]:
        return get_task(self._conn, int(task_id))

    async def increment_completed_cycles(self, task_id: str) -> int:
        return increment_completed_cycles(self._conn, int(task_id))

    async def mark_completed(self, task_id: str) -> None:
        mark_completed(self._conn, int(task_id))
