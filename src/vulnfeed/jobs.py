"""Scheduled job functions — the periodic sync cycle across all adapters."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone

from vulnfeed.ingestion.registry import get_adapter, registered_names
from vulnfeed.storage.connection import get_connection

logger = logging.getLogger(__name__)


def _record_run(
    database_path: str,
    run_type: str,
    started_at: str,
    result: dict,
    error: str | None = None,
) -> None:
    """Insert a pipeline run record into the pipeline_runs table."""
    finished_at = datetime.now(timezone.utc).isoformat()
    status = "error" if error else "success"
    with get_connection(database_path) as conn:
        conn.execute(
            "INSERT INTO pipeline_runs "
            "(id, run_type, started_at, finished_at, status, result, error) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(uuid.uuid4()),
                run_type,
                started_at,
                finished_at,
                status,
                json.dumps(result),
                error,
            ),
        )


async def _update_one(name: str, page_limit: int) -> bool:
    """Run one adapter's update. Returns False on failure, never raises."""
    adapter = get_adapter(name)
    if adapter is None:
        logger.warning("Adapter '%s' vanished from the registry, skipping", name)
        return False
    try:
        await adapter.update(page_limit)
    except Exception:
        logger.exception("Adapter '%s' update failed", name)
        return False
    logger.info("Adapter '%s' update complete", name)
    return True


async def run_sync_cycle(database_path: str, page_limit: int = 1) -> dict:
    """Fan out one update per registered adapter and wait for all of them.

    Adapter failures are isolated: each is logged with the adapter name and
    the others keep running. The outcome is recorded in pipeline_runs.
    """
    started_at = datetime.now(timezone.utc).isoformat()
    names = registered_names()
    logger.info("Sync cycle starting for %d adapter(s)", len(names))

    outcomes = await asyncio.gather(*(_update_one(name, page_limit) for name in names))
    failed = [name for name, ok in zip(names, outcomes) if not ok]

    result = {"adapters": len(names), "failed": failed}
    error_msg = f"{len(failed)} adapter(s) failed" if failed else None
    logger.info("Sync cycle complete: %d adapter(s), %d failed", len(names), len(failed))

    try:
        await asyncio.to_thread(_record_run, database_path, "sync", started_at, result, error_msg)
    except Exception:
        logger.exception("Failed to record sync run")
    return result
