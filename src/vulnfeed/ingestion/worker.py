"""Ingestion worker — the single consumer that merges records and triggers pushes."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Callable

from vulnfeed.ingestion.channel import IngestionChannel
from vulnfeed.ingestion.merge import merge_record
from vulnfeed.ingestion.records import CanonicalRecord, VulnInformation
from vulnfeed.ingestion.search import search_github_poc
from vulnfeed.push.dispatcher import dispatch
from vulnfeed.storage import records as store
from vulnfeed.storage.connection import get_connection

logger = logging.getLogger(__name__)


class IngestionWorker:
    """Drains the ingestion channel one record at a time.

    Each record is merged and, when new or materially changed, dispatched
    before the next record is taken off the channel. There must be exactly
    one worker per channel: that is what keeps two merges of the same key
    from ever overlapping.
    """

    def __init__(
        self,
        channel: IngestionChannel,
        database_path: str,
        *,
        dispatcher: Callable[..., bool] = dispatch,
        searcher: Callable[..., list[str]] = search_github_poc,
        github_token: str | None = None,
        http_timeout: float = 30,
        ding_api_url: str | None = None,
        max_reference_links: int | None = None,
    ) -> None:
        self._channel = channel
        self._database_path = database_path
        self._dispatcher = dispatcher
        self._searcher = searcher
        self._github_token = github_token
        self._http_timeout = http_timeout
        self._dispatch_kwargs: dict = {"timeout": http_timeout}
        if ding_api_url is not None:
            self._dispatch_kwargs["api_url"] = ding_api_url
        if max_reference_links is not None:
            self._dispatch_kwargs["max_reference_links"] = max_reference_links
        self.processed = 0

    async def run(self) -> None:
        """Consume until the channel is closed and drained."""
        logger.info("Ingestion worker started")
        while True:
            record = await self._channel.recv()
            if record is None:
                break
            await self.process(record)
        logger.info("Ingestion worker stopped after %d record(s)", self.processed)

    async def process(self, record: CanonicalRecord) -> None:
        """Merge one record and push it if it is new or materially changed.

        Never raises: merge and dispatch failures are logged and contained.
        """
        self.processed += 1
        try:
            record = await asyncio.to_thread(self._enrich, record)
            record_id, changed = await asyncio.to_thread(self._store, record)
        except Exception:
            logger.exception("Failed to store %s %s", record.KIND, record.key)
            return

        if not changed:
            return
        try:
            await asyncio.to_thread(
                self._dispatcher,
                self._database_path,
                type(record),
                record_id,
                **self._dispatch_kwargs,
            )
        except Exception:
            logger.exception(
                "Failed to push %s %s (id=%d); it stays unpushed",
                record.KIND, record.key, record_id,
            )

    def _enrich(self, record: CanonicalRecord) -> CanonicalRecord:
        """Attach code-search links to vulnerabilities seen for the first time."""
        if not isinstance(record, VulnInformation) or not record.cve or record.github_search:
            return record
        with get_connection(self._database_path) as conn:
            exists = store.fetch_by_key(conn, VulnInformation, record.key) is not None
        if exists:
            return record
        try:
            links = self._searcher(
                record.cve, token=self._github_token, timeout=self._http_timeout,
            )
        except Exception:
            logger.exception("Code search failed for %s", record.cve)
            return record
        return dataclasses.replace(record, github_search=list(links))

    def _store(self, record: CanonicalRecord) -> tuple[int, bool]:
        with get_connection(self._database_path, immediate=True) as conn:
            return merge_record(conn, record)
