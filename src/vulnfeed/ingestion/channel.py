"""Ingestion channel — unbounded multi-producer, single-consumer record queue."""

from __future__ import annotations

import asyncio
import logging

from vulnfeed.ingestion.records import CanonicalRecord

logger = logging.getLogger(__name__)

_CLOSED = object()


class ChannelClosed(RuntimeError):
    """Raised when sending on a channel that has been closed."""


class IngestionChannel:
    """Queue carrying canonical records from every adapter to the one worker.

    Sends never block. Closing enqueues an end marker behind everything already
    sent, so the consumer drains the backlog before ``recv`` returns None.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    async def send(self, record: CanonicalRecord) -> None:
        """Enqueue a record. Raises ChannelClosed after ``close()``."""
        if self._closed:
            raise ChannelClosed(f"channel closed, dropping record {record.key}")
        self._queue.put_nowait(record)

    async def recv(self) -> CanonicalRecord | None:
        """Wait for the next record. Returns None once closed and drained."""
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker in place for any later recv() call.
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        logger.info("Ingestion channel closed with %d record(s) pending", self._queue.qsize() - 1)
