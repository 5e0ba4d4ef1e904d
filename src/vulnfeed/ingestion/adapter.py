"""Source adapter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from vulnfeed.ingestion.channel import IngestionChannel

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class SourceAdapter(ABC):
    """Abstract base class for source adapters.

    Every adapter knows how to fetch one external feed and normalize its
    entries into canonical records. Records are not returned: they are sent
    onto the shared ingestion channel, one at a time, as they are parsed.
    The rest of the system is source-agnostic.
    """

    def __init__(
        self,
        channel: IngestionChannel,
        *,
        timeout: float = 30,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._channel = channel
        self._timeout = timeout
        self._client = client

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key of the adapter."""

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable source name."""

    @property
    @abstractmethod
    def link(self) -> str:
        """Landing page of the source."""

    @abstractmethod
    async def update(self, page_limit: int) -> None:
        """Fetch at most ``page_limit`` pages/batches and emit their records.

        Raises on failure; the caller isolates the error from other adapters.
        """

    def _http_client(self) -> httpx.AsyncClient:
        """Return the injected client, or a fresh one the caller must close."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(
            timeout=self._timeout,
            headers={"User-Agent": DEFAULT_USER_AGENT},
            follow_redirects=True,
        )

    async def _get(self, url: str, **kwargs) -> httpx.Response:
        client = self._http_client()
        try:
            resp = await client.get(url, **kwargs)
            resp.raise_for_status()
            return resp
        finally:
            if client is not self._client:
                await client.aclose()
