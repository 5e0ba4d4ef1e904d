"""Tests for vulnfeed.jobs — the sync cycle fan-out."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from vulnfeed.ingestion import registry
from vulnfeed.ingestion.registry import register_adapter
from vulnfeed.jobs import run_sync_cycle
from vulnfeed.storage.connection import get_connection
from vulnfeed.storage.schema import init_db


@pytest.fixture()
def db_path(tmp_path):
    path = str(tmp_path / "test.db")
    init_db(path)
    return path


@pytest.fixture(autouse=True)
def _isolated_registry():
    original = registry._REGISTRY
    registry.clear_registry()
    yield
    registry._REGISTRY = original


def _adapter(name, update=None):
    adapter = MagicMock()
    adapter.name = name
    adapter.update = update or AsyncMock(return_value=None)
    return adapter


def _runs(db_path):
    with get_connection(db_path) as conn:
        return conn.execute("SELECT * FROM pipeline_runs").fetchall()


class TestRunSyncCycle:
    def test_updates_every_adapter_with_page_limit(self, db_path):
        a, b = _adapter("a"), _adapter("b")
        register_adapter("a", a)
        register_adapter("b", b)

        result = asyncio.run(run_sync_cycle(db_path, page_limit=2))

        a.update.assert_awaited_once_with(2)
        b.update.assert_awaited_once_with(2)
        assert result == {"adapters": 2, "failed": []}

    def test_failure_is_isolated(self, db_path):
        broken = _adapter("broken", AsyncMock(side_effect=RuntimeError("feed down")))
        healthy = _adapter("healthy")
        register_adapter("broken", broken)
        register_adapter("healthy", healthy)

        result = asyncio.run(run_sync_cycle(db_path))

        healthy.update.assert_awaited_once_with(1)
        assert result["failed"] == ["broken"]

    def test_adapters_run_concurrently(self, db_path):
        started = []

        async def slow_update(name):
            started.append(name)
            await asyncio.sleep(0.01)
            # Both tasks must have started before either finishes
            assert len(started) == 2

        async def update_x(page_limit):
            await slow_update("x")

        async def update_y(page_limit):
            await slow_update("y")

        register_adapter("x", _adapter("x", update_x))
        register_adapter("y", _adapter("y", update_y))

        result = asyncio.run(run_sync_cycle(db_path))
        assert result["failed"] == []
        assert sorted(started) == ["x", "y"]

    def test_records_pipeline_run(self, db_path):
        register_adapter("ok", _adapter("ok"))
        register_adapter(
            "bad", _adapter("bad", AsyncMock(side_effect=ValueError("unparseable")))
        )

        asyncio.run(run_sync_cycle(db_path))

        rows = _runs(db_path)
        assert len(rows) == 1
        assert rows[0]["run_type"] == "sync"
        assert rows[0]["status"] == "error"
        assert json.loads(rows[0]["result"]) == {"adapters": 2, "failed": ["bad"]}
        assert rows[0]["error"] == "1 adapter(s) failed"

    def test_empty_registry_records_success(self, db_path):
        result = asyncio.run(run_sync_cycle(db_path))
        assert result == {"adapters": 0, "failed": []}
        assert _runs(db_path)[0]["status"] == "success"

    def test_run_record_failure_is_logged(self, db_path):
        register_adapter("ok", _adapter("ok"))
        with patch("vulnfeed.jobs._record_run", side_effect=OSError("read-only")):
            result = asyncio.run(run_sync_cycle(db_path))
        assert result["failed"] == []
