"""CISA Known Exploited Vulnerabilities source adapter."""

from __future__ import annotations

import logging

from vulnfeed.ingestion.adapter import SourceAdapter
from vulnfeed.ingestion.records import Severity, VulnInformation

logger = logging.getLogger(__name__)

KEV_URL = "https://www.cisa.gov/sites/default/files/feeds/known_exploited_vulnerabilities.json"
KEV_LINK = "https://www.cisa.gov/known-exploited-vulnerabilities-catalog"
KEV_PAGE_SIZE = 10
TAG_EXPLOITED = "exploited-in-the-wild"


def _to_record(entry: dict, source_name: str) -> VulnInformation:
    cve_id = entry.get("cveID", "")
    notes = entry.get("notes") or ""
    tags = [
        t for t in (entry.get("vendorProject", ""), entry.get("product", ""), TAG_EXPLOITED) if t
    ]
    return VulnInformation(
        key=f"{cve_id}_KEV",
        title=entry.get("vulnerabilityName", ""),
        description=entry.get("shortDescription", ""),
        severity=Severity.CRITICAL.value,
        cve=cve_id,
        disclosure=entry.get("dateAdded", ""),
        solutions=entry.get("requiredAction", ""),
        reference_links=[notes] if notes else [],
        tags=tags,
        source=KEV_LINK,
        source_name=source_name,
        detail_link=f"https://nvd.nist.gov/vuln/detail/{cve_id}" if cve_id else "",
    )


class KevAdapter(SourceAdapter):
    """Adapter for the CISA KEV catalog (a single JSON document)."""

    @property
    def name(self) -> str:
        return "KevPlugin"

    @property
    def display_name(self) -> str:
        return "Known Exploited Vulnerabilities Catalog"

    @property
    def link(self) -> str:
        return KEV_LINK

    async def update(self, page_limit: int) -> None:
        resp = await self._get(KEV_URL)
        vulnerabilities = resp.json().get("vulnerabilities", [])

        item_limit = min(max(page_limit, 0) * KEV_PAGE_SIZE, len(vulnerabilities))
        newest = sorted(vulnerabilities, key=lambda v: v.get("dateAdded", ""), reverse=True)

        sent = 0
        for entry in newest[:item_limit]:
            if not entry.get("cveID"):
                continue
            await self._channel.send(_to_record(entry, self.name))
            sent += 1
        logger.info("Sent %d KEV entries (of %d in catalog)", sent, len(vulnerabilities))
