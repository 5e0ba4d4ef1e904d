"""Merge engine — decide create vs. update vs. no-op for one incoming record."""

from __future__ import annotations

import dataclasses
import logging
import sqlite3

from vulnfeed.ingestion.records import CanonicalRecord
from vulnfeed.storage import records as store

logger = logging.getLogger(__name__)

REASON_CREATED = "created"
REASON_SEVERITY_UPDATED = "severity updated"
REASON_TAGS_ADDED = "tags added"


def check_severity_update(stored: CanonicalRecord, incoming: CanonicalRecord) -> str | None:
    """Return a change reason if the severity / risk level differs, else None."""
    if stored.level == incoming.level:
        return None
    logger.info(
        "%s from %s changed %s from %s to %s",
        stored.title, stored.source_name or stored.source,
        stored.LEVEL_FIELD, stored.level, incoming.level,
    )
    return f"{REASON_SEVERITY_UPDATED}: {stored.level} => {incoming.level}"


def new_tags(stored: CanonicalRecord, incoming: CanonicalRecord) -> list[str]:
    """Incoming tags not present in the stored list, in incoming order, without repeats."""
    added: list[str] = []
    for tag in incoming.tags:
        if tag not in stored.tags and tag not in added:
            added.append(tag)
    return added


def check_tag_update(stored: CanonicalRecord, incoming: CanonicalRecord) -> str | None:
    """Return a change reason listing the new tags, else None."""
    added = new_tags(stored, incoming)
    if not added:
        return None
    logger.info(
        "%s from %s added new tags %s",
        stored.title, stored.source_name or stored.source, added,
    )
    return f"{REASON_TAGS_ADDED}: {', '.join(added)}"


def _merged(stored: CanonicalRecord, incoming: CanonicalRecord, reasons: list[str]) -> CanonicalRecord:
    """Incoming content on top of the stored history.

    Tags only ever grow and reasons only ever get appended to. An incoming
    record without code-search links keeps the ones already stored.
    """
    changes = {
        "tags": [*stored.tags, *new_tags(stored, incoming)],
        "reasons": [*stored.reasons, *reasons],
        "pushed": False,
    }
    if hasattr(incoming, "github_search") and not incoming.github_search:
        changes["github_search"] = list(stored.github_search)
    return dataclasses.replace(incoming, **changes)


def merge_record(conn: sqlite3.Connection, incoming: CanonicalRecord) -> tuple[int, bool]:
    """Create or update ``incoming`` by key inside the caller's transaction.

    Returns ``(record_id, is_new_or_changed)``. A record is changed only when
    its severity differs or it carries a tag not seen before; any other
    difference is ignored and the stored row is left untouched.
    """
    existing = store.fetch_by_key(conn, type(incoming), incoming.key)

    if existing is None:
        record = dataclasses.replace(
            incoming,
            reasons=[*incoming.reasons, REASON_CREATED],
            pushed=False,
        )
        record_id = store.create(conn, record)
        logger.info("New %s created: %s (id=%d)", incoming.KIND, incoming.key, record_id)
        return record_id, True

    stored = existing.record
    reasons = [
        reason
        for reason in (
            check_severity_update(stored, incoming),
            check_tag_update(stored, incoming),
        )
        if reason is not None
    ]
    if not reasons:
        logger.info("%s already up to date: %s", incoming.KIND, incoming.key)
        return existing.id, False

    store.update(conn, existing.id, _merged(stored, incoming, reasons))
    logger.info(
        "%s %s materially changed (%s)", incoming.KIND, incoming.key, "; ".join(reasons)
    )
    return existing.id, True
