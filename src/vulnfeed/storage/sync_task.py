"""Persisted scheduler job state — a single ``sync_task`` row."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone

DEFAULT_TASK_NAME = "vuln-sync"


@dataclass(frozen=True)
class SyncTask:
    id: int
    name: str
    interval_minutes: int
    status: bool
    job_id: str | None
    created_at: str
    updated_at: str


def _from_row(row: sqlite3.Row) -> SyncTask:
    return SyncTask(
        id=row["id"],
        name=row["name"],
        interval_minutes=row["interval_minutes"],
        status=bool(row["status"]),
        job_id=row["job_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def first(conn: sqlite3.Connection) -> SyncTask | None:
    """Return the scheduler row, or None if it was never configured."""
    row = conn.execute("SELECT * FROM sync_task ORDER BY id LIMIT 1").fetchone()
    return _from_row(row) if row is not None else None


def upsert(
    conn: sqlite3.Connection,
    *,
    name: str,
    interval_minutes: int,
    status: bool,
) -> int:
    """Create the scheduler row, or update the existing one. Returns its id.

    The persisted job handle is left untouched; only the scheduler replaces it.
    """
    now = datetime.now(timezone.utc).isoformat()
    task = first(conn)
    if task is not None:
        conn.execute(
            "UPDATE sync_task SET name = ?, interval_minutes = ?, status = ?, "
            "updated_at = ? WHERE id = ?",
            (name, interval_minutes, 1 if status else 0, now, task.id),
        )
        return task.id
    cursor = conn.execute(
        "INSERT INTO sync_task (name, interval_minutes, status, job_id, created_at, updated_at) "
        "VALUES (?, ?, ?, NULL, ?, ?)",
        (name, interval_minutes, 1 if status else 0, now, now),
    )
    return cursor.lastrowid


def update_job(
    conn: sqlite3.Connection,
    task_id: int,
    job_id: str | None,
    *,
    interval_minutes: int | None = None,
    status: bool | None = None,
) -> None:
    """Persist a new job handle (or clear it with None), optionally with the interval."""
    now = datetime.now(timezone.utc).isoformat()
    conn.execute(
        "UPDATE sync_task SET job_id = ?, "
        "interval_minutes = COALESCE(?, interval_minutes), "
        "status = COALESCE(?, status), updated_at = ? WHERE id = ?",
        (
            job_id,
            interval_minutes,
            None if status is None else (1 if status else 0),
            now,
            task_id,
        ),
    )
