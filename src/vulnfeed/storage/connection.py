"""SQLite connection management."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Generator

# Outlasts a DingTalk push, which holds the write lock for up to the HTTP timeout.
_BUSY_TIMEOUT_MS = 60000


@contextmanager
def get_connection(
    database_path: str, *, immediate: bool = False
) -> Generator[sqlite3.Connection, None, None]:
    """Open a SQLite connection with WAL mode and foreign keys enabled.

    With ``immediate=True`` the write lock is taken up front (BEGIN IMMEDIATE),
    so reads made inside the block belong to the same transaction as the
    writes that follow them.

    Commits on clean exit, rolls back on exception, and always closes.
    """
    conn = sqlite3.connect(database_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute(f"PRAGMA busy_timeout={_BUSY_TIMEOUT_MS}")
    conn.row_factory = sqlite3.Row
    try:
        if immediate:
            conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
