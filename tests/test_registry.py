"""Tests for vulnfeed.ingestion.registry — adapter registry."""

from __future__ import annotations

import threading

from vulnfeed.ingestion import registry
from vulnfeed.ingestion.adapter import SourceAdapter
from vulnfeed.ingestion.channel import IngestionChannel
from vulnfeed.ingestion.registry import (
    get_adapter,
    register_adapter,
    registered_adapters,
    registered_names,
)


class _DummyAdapter(SourceAdapter):
    def __init__(self, channel, name="dummy"):
        super().__init__(channel)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return f"Dummy {self._name}"

    @property
    def link(self) -> str:
        return "https://example.com"

    async def update(self, page_limit: int) -> None:
        return None


class TestRegistry:
    def setup_method(self):
        self._original = registry._REGISTRY
        registry.clear_registry()
        self.channel = IngestionChannel()

    def teardown_method(self):
        registry._REGISTRY = self._original

    def test_register_and_lookup(self):
        adapter = _DummyAdapter(self.channel)
        register_adapter("dummy", adapter)
        assert get_adapter("dummy") is adapter

    def test_lookup_unknown_returns_none(self):
        assert get_adapter("nonexistent") is None

    def test_last_registration_wins(self):
        first = _DummyAdapter(self.channel)
        second = _DummyAdapter(self.channel)
        register_adapter("dummy", first)
        register_adapter("dummy", second)
        assert get_adapter("dummy") is second
        assert registered_names() == ["dummy"]

    def test_registered_names_sorted(self):
        register_adapter("zzz", _DummyAdapter(self.channel, "zzz"))
        register_adapter("aaa", _DummyAdapter(self.channel, "aaa"))
        assert registered_names() == ["aaa", "zzz"]
        assert [a.name for a in registered_adapters()] == ["aaa", "zzz"]

    def test_snapshot_unaffected_by_later_writes(self):
        register_adapter("aaa", _DummyAdapter(self.channel, "aaa"))
        snapshot = registered_adapters()
        register_adapter("bbb", _DummyAdapter(self.channel, "bbb"))
        assert [a.name for a in snapshot] == ["aaa"]
        assert registered_names() == ["aaa", "bbb"]

    def test_concurrent_registration(self):
        def register(i):
            register_adapter(f"a{i:02d}", _DummyAdapter(self.channel, f"a{i:02d}"))

        threads = [threading.Thread(target=register, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(registered_names()) == 20


class TestInitAdapters:
    def setup_method(self):
        self._original = registry._REGISTRY
        registry.clear_registry()

    def teardown_method(self):
        registry._REGISTRY = self._original

    def test_shipped_adapters_registered(self):
        from vulnfeed.config import Config
        from vulnfeed.ingestion import init_adapters

        init_adapters(IngestionChannel(), Config(database_path=":memory:"))

        assert registered_names() == ["GitHubAdvisoryPlugin", "GrafanaPlugin", "KevPlugin"]
        for adapter in registered_adapters():
            assert adapter.display_name
            assert adapter.link.startswith("https://")
