"""Persisted DingTalk bot configuration — a single ``ding_bot_config`` row."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass


@dataclass(frozen=True)
class DingBotConfig:
    id: int
    access_token: str
    secret_token: str
    status: bool


def first(conn: sqlite3.Connection) -> DingBotConfig | None:
    """Return the active bot configuration row, if any."""
    row = conn.execute("SELECT * FROM ding_bot_config ORDER BY id LIMIT 1").fetchone()
    if row is None:
        return None
    return DingBotConfig(
        id=row["id"],
        access_token=row["access_token"],
        secret_token=row["secret_token"],
        status=bool(row["status"]),
    )


def upsert(
    conn: sqlite3.Connection,
    *,
    access_token: str,
    secret_token: str,
    status: bool,
) -> int:
    """Create the bot configuration, or replace the existing one. Returns its id."""
    config = first(conn)
    if config is not None:
        conn.execute(
            "UPDATE ding_bot_config SET access_token = ?, secret_token = ?, status = ? "
            "WHERE id = ?",
            (access_token, secret_token, 1 if status else 0, config.id),
        )
        return config.id
    cursor = conn.execute(
        "INSERT INTO ding_bot_config (access_token, secret_token, status) VALUES (?, ?, ?)",
        (access_token, secret_token, 1 if status else 0),
    )
    return cursor.lastrowid
