"""Grafana security blog source adapter — security release notices."""

from __future__ import annotations

import logging
import re
from html import unescape

import feedparser

from vulnfeed.ingestion.adapter import SourceAdapter
from vulnfeed.ingestion.records import SecurityNotice, Severity

logger = logging.getLogger(__name__)

GRAFANA_SECURITY_URL = "https://grafana.com/tags/security/"
GRAFANA_FEED_URL = "https://grafana.com/tags/security/index.xml"
_TITLE_PREFIXES = ("Grafana security release", "Grafana security update")
_MAX_NOTICES = 10
_CVE_RE = re.compile(r"CVE-\d{4}-\d{4,}")
_HTML_TAG_RE = re.compile(r"<[^>]+>")


def strip_html(text: str) -> str:
    """Remove HTML tags and unescape entities."""
    return unescape(_HTML_TAG_RE.sub("", text)).strip()


def _notice_key(link: str) -> str:
    """Last non-empty path segment of the post URL."""
    segments = [s for s in link.split("/") if s]
    return segments[-1] if segments else link


def _publish_time(entry: dict) -> str:
    parsed = entry.get("published_parsed")
    if parsed:
        return f"{parsed.tm_year:04d}-{parsed.tm_mon:02d}-{parsed.tm_mday:02d}"
    return entry.get("published", "")


class GrafanaNoticeAdapter(SourceAdapter):
    """Adapter for Grafana security release announcements."""

    @property
    def name(self) -> str:
        return "GrafanaPlugin"

    @property
    def display_name(self) -> str:
        return "Grafana security announcements"

    @property
    def link(self) -> str:
        return GRAFANA_SECURITY_URL

    async def update(self, page_limit: int) -> None:
        resp = await self._get(GRAFANA_FEED_URL)
        feed = feedparser.parse(resp.text)
        if feed.bozo and not feed.entries:
            raise ValueError(f"unparseable Grafana feed: {feed.bozo_exception}")

        sent = 0
        for entry in feed.entries:
            if sent >= _MAX_NOTICES:
                break
            title = (entry.get("title") or "").strip()
            if not title.startswith(_TITLE_PREFIXES):
                continue
            link = entry.get("link") or ""
            if link and not link.startswith("http"):
                link = f"https://grafana.com{link}"
            summary = strip_html(entry.get("summary", ""))

            await self._channel.send(
                SecurityNotice(
                    key=_notice_key(link) or title,
                    title=title,
                    product_name="Grafana",
                    risk_level=Severity.CRITICAL.value,
                    description=summary,
                    source=self.link,
                    source_name=self.name,
                    publish_time=_publish_time(entry),
                    detail_link=link,
                    tags=sorted(set(_CVE_RE.findall(f"{title} {summary}"))),
                )
            )
            sent += 1
        logger.info("Sent %d Grafana security notices", sent)
