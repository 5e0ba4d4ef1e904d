"""Tests for vulnfeed.ingestion.worker — sequential merge and dispatch."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from vulnfeed.ingestion.channel import IngestionChannel
from vulnfeed.ingestion.records import SecurityNotice, VulnInformation
from vulnfeed.ingestion.worker import IngestionWorker
from vulnfeed.push.dingbot import DeliveryError
from vulnfeed.storage import records as store
from vulnfeed.storage.connection import get_connection
from vulnfeed.storage.schema import init_db


@pytest.fixture()
def db_path(tmp_path):
    path = str(tmp_path / "test.db")
    init_db(path)
    return path


def _vuln(key="AVD-1", **overrides) -> VulnInformation:
    values = {"key": key, "title": key, "severity": "Low", "tags": []}
    values.update(overrides)
    return VulnInformation(**values)


def _run(db_path, records, **worker_kwargs) -> IngestionWorker:
    """Feed ``records`` through a fresh channel and run the worker to completion."""
    worker_kwargs.setdefault("dispatcher", MagicMock(return_value=True))
    worker_kwargs.setdefault("searcher", MagicMock(return_value=[]))

    async def scenario():
        channel = IngestionChannel()
        worker = IngestionWorker(channel, db_path, **worker_kwargs)
        for record in records:
            await channel.send(record)
        channel.close()
        await worker.run()
        return worker

    return asyncio.run(scenario())


def _load(db_path, key="AVD-1", cls=VulnInformation):
    with get_connection(db_path) as conn:
        return store.fetch_by_key(conn, cls, key)


class TestIngestionWorker:
    def test_new_record_is_stored_and_dispatched(self, db_path):
        dispatcher = MagicMock(return_value=True)
        worker = _run(db_path, [_vuln()], dispatcher=dispatcher)

        stored = _load(db_path)
        assert worker.processed == 1
        assert stored.record.reasons == ["created"]
        dispatcher.assert_called_once()
        args, kwargs = dispatcher.call_args
        assert args == (db_path, VulnInformation, stored.id)
        assert kwargs["timeout"] == 30

    def test_unchanged_record_is_not_dispatched(self, db_path):
        dispatcher = MagicMock(return_value=True)
        _run(db_path, [_vuln(), _vuln()], dispatcher=dispatcher)
        assert dispatcher.call_count == 1

    def test_avd1_scenario_dispatches_once_for_update(self, db_path):
        dispatcher = MagicMock(return_value=True)
        _run(db_path, [_vuln()], dispatcher=dispatcher)
        dispatcher.reset_mock()

        _run(db_path, [_vuln(severity="High", tags=["rce"])], dispatcher=dispatcher)

        stored = _load(db_path)
        dispatcher.assert_called_once()
        assert stored.record.reasons == ["created", "severity updated: Low => High", "tags added: rce"]
        assert stored.record.pushed is False

    def test_same_key_processed_in_order(self, db_path):
        """A's merge and dispatch complete before B's merge starts."""
        events = []

        def dispatcher(database_path, cls, record_id, **kwargs):
            with get_connection(database_path) as conn:
                severity = store.fetch_by_id(conn, cls, record_id).record.severity
            events.append(("dispatch", severity))
            return True

        _run(
            db_path,
            [_vuln(severity="Low"), _vuln(severity="High"), _vuln(severity="Critical")],
            dispatcher=dispatcher,
        )

        assert events == [("dispatch", "Low"), ("dispatch", "High"), ("dispatch", "Critical")]
        assert _load(db_path).record.reasons == [
            "created",
            "severity updated: Low => High",
            "severity updated: High => Critical",
        ]

    def test_merge_failure_does_not_stop_the_loop(self, db_path):
        # title=None violates NOT NULL and fails inside the merge transaction
        bad = _vuln(key="bad", title=None)
        worker = _run(db_path, [bad, _vuln(key="good")])

        assert worker.processed == 2
        assert _load(db_path, "bad") is None
        assert _load(db_path, "good") is not None

    def test_dispatch_failure_is_contained(self, db_path):
        dispatcher = MagicMock(side_effect=[DeliveryError("errcode 310000"), True])
        _run(db_path, [_vuln(key="a"), _vuln(key="b")], dispatcher=dispatcher)

        assert dispatcher.call_count == 2
        assert _load(db_path, "a").record.pushed is False

    def test_dispatch_settings_forwarded(self, db_path):
        dispatcher = MagicMock(return_value=True)
        _run(
            db_path,
            [_vuln()],
            dispatcher=dispatcher,
            http_timeout=5,
            ding_api_url="http://ding.local/send",
            max_reference_links=3,
        )
        _, kwargs = dispatcher.call_args
        assert kwargs == {"timeout": 5, "api_url": "http://ding.local/send", "max_reference_links": 3}

    def test_notices_are_processed(self, db_path):
        dispatcher = MagicMock(return_value=True)
        notice = SecurityNotice(key="n-1", title="Grafana", risk_level="Critical")
        _run(db_path, [notice], dispatcher=dispatcher)

        stored = _load(db_path, "n-1", SecurityNotice)
        assert stored.record.reasons == ["created"]
        assert dispatcher.call_args[0][1] is SecurityNotice


class TestEnrichment:
    def test_code_search_on_first_sighting(self, db_path):
        searcher = MagicMock(return_value=["https://github.com/x/CVE-2024-1"])
        _run(db_path, [_vuln(cve="CVE-2024-1")], searcher=searcher, github_token="tok")

        searcher.assert_called_once_with("CVE-2024-1", token="tok", timeout=30)
        assert _load(db_path).record.github_search == ["https://github.com/x/CVE-2024-1"]

    def test_no_search_for_known_key(self, db_path):
        searcher = MagicMock(return_value=["https://github.com/x/poc"])
        _run(
            db_path,
            [_vuln(cve="CVE-2024-1"), _vuln(cve="CVE-2024-1", tags=["new"])],
            searcher=searcher,
        )
        assert searcher.call_count == 1
        assert _load(db_path).record.github_search == ["https://github.com/x/poc"]

    def test_no_search_without_cve(self, db_path):
        searcher = MagicMock(return_value=[])
        _run(db_path, [_vuln(cve="")], searcher=searcher)
        searcher.assert_not_called()

    def test_no_search_for_notices(self, db_path):
        searcher = MagicMock(return_value=[])
        _run(db_path, [SecurityNotice(key="n", title="n", risk_level="Low")], searcher=searcher)
        searcher.assert_not_called()

    def test_search_failure_still_stores(self, db_path):
        searcher = MagicMock(side_effect=RuntimeError("rate limited"))
        dispatcher = MagicMock(return_value=True)
        _run(db_path, [_vuln(cve="CVE-2024-1")], searcher=searcher, dispatcher=dispatcher)

        stored = _load(db_path)
        assert stored.record.github_search == []
        dispatcher.assert_called_once()
