"""Read-only query functions for the web API."""

from __future__ import annotations

import json

from vulnfeed.ingestion.records import RecordClass, StoredRecord
from vulnfeed.storage import ding_bot, sync_task
from vulnfeed.storage import records as store
from vulnfeed.web.deps import get_readonly_connection


def list_stored(
    database_path: str, cls: RecordClass, page: int = 1, per_page: int = 20
) -> tuple[list[StoredRecord], int]:
    """Return a paginated list of vulnerabilities or notices, newest first."""
    with get_readonly_connection(database_path) as conn:
        return store.list_records(conn, cls, page=page, per_page=per_page)


def get_stored(database_path: str, cls: RecordClass, record_id: int) -> StoredRecord | None:
    with get_readonly_connection(database_path) as conn:
        return store.fetch_by_id(conn, cls, record_id)


def get_sync_task(database_path: str) -> sync_task.SyncTask | None:
    with get_readonly_connection(database_path) as conn:
        return sync_task.first(conn)


def get_ding_bot(database_path: str) -> ding_bot.DingBotConfig | None:
    with get_readonly_connection(database_path) as conn:
        return ding_bot.first(conn)


# ---------------------------------------------------------------------------
# list_pipeline_runs
# ---------------------------------------------------------------------------
def list_pipeline_runs(
    database_path: str,
    run_type: str | None = None,
    page: int = 1,
    per_page: int = 50,
) -> tuple[list[dict], int]:
    """Return a paginated list of pipeline runs, most recent first."""
    offset = (page - 1) * per_page
    where = ""
    params: list = []
    if run_type is not None:
        where = "WHERE run_type = ?"
        params.append(run_type)

    with get_readonly_connection(database_path) as conn:
        total = conn.execute(
            f"SELECT COUNT(*) FROM pipeline_runs {where}", params  # noqa: S608
        ).fetchone()[0]
        rows = conn.execute(
            "SELECT id, run_type, started_at, finished_at, status, result, error "
            f"FROM pipeline_runs {where} "  # noqa: S608
            "ORDER BY started_at DESC LIMIT ? OFFSET ?",
            [*params, per_page, offset],
        ).fetchall()

    runs = []
    for r in rows:
        runs.append({
            "id": r["id"],
            "run_type": r["run_type"],
            "started_at": r["started_at"],
            "finished_at": r["finished_at"],
            "status": r["status"],
            "result": json.loads(r["result"]),
            "error": r["error"],
        })
    return runs, total
