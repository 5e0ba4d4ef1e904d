"""Database schema definition and initialization."""

from __future__ import annotations

import logging
import sqlite3

from vulnfeed.storage.connection import get_connection

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
-- Vulnerabilities collected from vulnerability feeds
CREATE TABLE IF NOT EXISTS vuln_information (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    key             TEXT NOT NULL UNIQUE,
    title           TEXT NOT NULL,
    description     TEXT NOT NULL DEFAULT '',
    severity        TEXT NOT NULL,
    cve             TEXT NOT NULL DEFAULT '',
    disclosure      TEXT NOT NULL DEFAULT '',
    solutions       TEXT NOT NULL DEFAULT '',
    reference_links TEXT NOT NULL DEFAULT '[]',     -- JSON array
    tags            TEXT NOT NULL DEFAULT '[]',     -- JSON array
    github_search   TEXT NOT NULL DEFAULT '[]',     -- JSON array
    source          TEXT NOT NULL DEFAULT '',
    source_name     TEXT NOT NULL DEFAULT '',
    detail_link     TEXT NOT NULL DEFAULT '',
    reasons         TEXT NOT NULL DEFAULT '[]',     -- JSON array, append-only
    pushed          INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

-- Vendor security notices
CREATE TABLE IF NOT EXISTS security_notice (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    key             TEXT NOT NULL UNIQUE,
    title           TEXT NOT NULL,
    product_name    TEXT NOT NULL DEFAULT '',
    risk_level      TEXT NOT NULL,
    description     TEXT NOT NULL DEFAULT '',
    source          TEXT NOT NULL DEFAULT '',
    source_name     TEXT NOT NULL DEFAULT '',
    is_zero_day     INTEGER NOT NULL DEFAULT 0,
    publish_time    TEXT NOT NULL DEFAULT '',
    detail_link     TEXT NOT NULL DEFAULT '',
    tags            TEXT NOT NULL DEFAULT '[]',     -- JSON array
    reasons         TEXT NOT NULL DEFAULT '[]',     -- JSON array, append-only
    pushed          INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

-- Scheduler job state (single row)
CREATE TABLE IF NOT EXISTS sync_task (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    name                TEXT NOT NULL,
    interval_minutes    INTEGER NOT NULL CHECK (interval_minutes BETWEEN 1 AND 60),
    status              INTEGER NOT NULL DEFAULT 1,
    job_id              TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL
);

-- DingTalk bot configuration (single row)
CREATE TABLE IF NOT EXISTS ding_bot_config (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    access_token    TEXT NOT NULL,
    secret_token    TEXT NOT NULL,
    status          INTEGER NOT NULL DEFAULT 1
);

-- Sync cycle tracking
CREATE TABLE IF NOT EXISTS pipeline_runs (
    id          TEXT PRIMARY KEY,
    run_type    TEXT NOT NULL CHECK (run_type IN ('sync')),
    started_at  TEXT NOT NULL,
    finished_at TEXT NOT NULL,
    status      TEXT NOT NULL CHECK (status IN ('success', 'error')),
    result      TEXT NOT NULL,   -- JSON
    error       TEXT
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_vuln_information_cve ON vuln_information(cve);
CREATE INDEX IF NOT EXISTS idx_vuln_information_updated_at ON vuln_information(updated_at);
CREATE INDEX IF NOT EXISTS idx_security_notice_updated_at ON security_notice(updated_at);
CREATE INDEX IF NOT EXISTS idx_pipeline_runs_started_at ON pipeline_runs(started_at);
"""


def _migrate_security_notice_add_tags(conn: sqlite3.Connection) -> None:
    """Add tags, reasons and description columns to older security_notice tables."""
    for col, ddl in (
        ("tags", "TEXT NOT NULL DEFAULT '[]'"),
        ("reasons", "TEXT NOT NULL DEFAULT '[]'"),
        ("description", "TEXT NOT NULL DEFAULT ''"),
    ):
        try:
            conn.execute(f"ALTER TABLE security_notice ADD COLUMN {col} {ddl}")  # noqa: S608
        except sqlite3.OperationalError:
            pass  # Column already exists


def init_db(database_path: str) -> None:
    """Create all tables and indexes if they do not already exist."""
    with get_connection(database_path) as conn:
        conn.executescript(_SCHEMA_SQL)
        _migrate_security_notice_add_tags(conn)
    logger.info("Database initialized at %s", database_path)
