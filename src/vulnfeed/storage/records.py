"""Record store — create, read and update canonical records by key or id.

Every function takes an open connection; the caller owns the transaction.
"""

from __future__ import annotations

import dataclasses
import json
import sqlite3
from datetime import datetime, timezone

from vulnfeed.ingestion.records import CanonicalRecord, RecordClass, StoredRecord


def _content_fields(cls: RecordClass) -> list[str]:
    return [f.name for f in dataclasses.fields(cls)]


def _to_row(record: CanonicalRecord) -> dict:
    row = dataclasses.asdict(record)
    for name in record.JSON_FIELDS:
        row[name] = json.dumps(row[name], ensure_ascii=False)
    for name in record.BOOL_FIELDS:
        row[name] = 1 if row[name] else 0
    return row


def _from_row(cls: RecordClass, row: sqlite3.Row) -> StoredRecord:
    values = {}
    for name in _content_fields(cls):
        value = row[name]
        if name in cls.JSON_FIELDS:
            value = json.loads(value) if value else []
        elif name in cls.BOOL_FIELDS:
            value = bool(value)
        values[name] = value
    return StoredRecord(
        id=row["id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        record=cls(**values),
    )


def fetch_by_key(
    conn: sqlite3.Connection, cls: RecordClass, key: str
) -> StoredRecord | None:
    """Look up a record by its external key. Returns None if absent."""
    row = conn.execute(
        f"SELECT * FROM {cls.TABLE} WHERE key = ?",  # noqa: S608
        (key,),
    ).fetchone()
    return _from_row(cls, row) if row is not None else None


def fetch_by_id(
    conn: sqlite3.Connection, cls: RecordClass, record_id: int
) -> StoredRecord | None:
    """Look up a record by its store id. Returns None if absent."""
    row = conn.execute(
        f"SELECT * FROM {cls.TABLE} WHERE id = ?",  # noqa: S608
        (record_id,),
    ).fetchone()
    return _from_row(cls, row) if row is not None else None


def create(conn: sqlite3.Connection, record: CanonicalRecord) -> int:
    """Insert a new record and return its id."""
    row = _to_row(record)
    now = datetime.now(timezone.utc).isoformat()
    row["created_at"] = now
    row["updated_at"] = now
    columns = list(row)
    cursor = conn.execute(
        f"INSERT INTO {record.TABLE} ({', '.join(columns)}) "  # noqa: S608
        f"VALUES ({', '.join('?' for _ in columns)})",
        [row[c] for c in columns],
    )
    return cursor.lastrowid


def update(conn: sqlite3.Connection, record_id: int, record: CanonicalRecord) -> None:
    """Overwrite every content field of an existing record. The key never changes."""
    row = _to_row(record)
    del row["key"]
    row["updated_at"] = datetime.now(timezone.utc).isoformat()
    assignments = ", ".join(f"{c} = ?" for c in row)
    conn.execute(
        f"UPDATE {record.TABLE} SET {assignments} WHERE id = ?",  # noqa: S608
        [*row.values(), record_id],
    )


def set_pushed(
    conn: sqlite3.Connection, cls: RecordClass, record_id: int, pushed: bool
) -> None:
    """Flip the delivery flag of a record."""
    conn.execute(
        f"UPDATE {cls.TABLE} SET pushed = ? WHERE id = ?",  # noqa: S608
        (1 if pushed else 0, record_id),
    )


def list_records(
    conn: sqlite3.Connection,
    cls: RecordClass,
    *,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[StoredRecord], int]:
    """Return one page of records, most recently updated first, and the total count."""
    total = conn.execute(
        f"SELECT COUNT(*) AS n FROM {cls.TABLE}"  # noqa: S608
    ).fetchone()["n"]
    rows = conn.execute(
        f"SELECT * FROM {cls.TABLE} ORDER BY updated_at DESC, id DESC "  # noqa: S608
        "LIMIT ? OFFSET ?",
        (per_page, (page - 1) * per_page),
    ).fetchall()
    return [_from_row(cls, r) for r in rows], total
