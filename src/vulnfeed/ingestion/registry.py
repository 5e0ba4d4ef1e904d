"""Adapter registry — maps adapter names to live adapter instances.

Populated once at startup and never torn down. Lookups and enumeration are
plain dict reads on the current mapping and take no lock; registration swaps
in a new mapping under a lock, so a reader iterating a snapshot is never
disturbed by a concurrent write.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vulnfeed.ingestion.adapter import SourceAdapter

_REGISTRY: dict[str, SourceAdapter] = {}
_WRITE_LOCK = threading.Lock()


def register_adapter(name: str, adapter: SourceAdapter) -> None:
    """Register an adapter under ``name``, replacing any previous entry."""
    global _REGISTRY
    with _WRITE_LOCK:
        updated = dict(_REGISTRY)
        updated[name] = adapter
        _REGISTRY = updated


def get_adapter(name: str) -> SourceAdapter | None:
    """Look up an adapter by name. Returns None if not found."""
    return _REGISTRY.get(name)


def registered_names() -> list[str]:
    """Return a sorted list of all registered adapter names."""
    return sorted(_REGISTRY)


def registered_adapters() -> list[SourceAdapter]:
    """Return a snapshot of all registered adapters, ordered by name."""
    snapshot = _REGISTRY
    return [snapshot[name] for name in sorted(snapshot)]


def clear_registry() -> None:
    """Drop every registration. Only meant for tests."""
    global _REGISTRY
    with _WRITE_LOCK:
        _REGISTRY = {}
