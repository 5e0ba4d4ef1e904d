"""GitHub Advisory Database source adapter — reviewed global security advisories."""

from __future__ import annotations

import logging

from vulnfeed.ingestion.adapter import SourceAdapter
from vulnfeed.ingestion.records import Severity, VulnInformation

logger = logging.getLogger(__name__)

_ADVISORIES_URL = "https://api.github.com/advisories"
_PER_PAGE = 30

_SEVERITY_MAP = {
    "low": Severity.LOW.value,
    "medium": Severity.MEDIUM.value,
    "moderate": Severity.MEDIUM.value,
    "high": Severity.HIGH.value,
    "critical": Severity.CRITICAL.value,
}


def _to_record(advisory: dict, source_name: str) -> VulnInformation:
    ecosystems: list[str] = []
    for vuln in advisory.get("vulnerabilities") or []:
        ecosystem = (vuln.get("package") or {}).get("ecosystem")
        if ecosystem and ecosystem not in ecosystems:
            ecosystems.append(ecosystem)
    cwes = [c["cwe_id"] for c in advisory.get("cwes") or [] if c.get("cwe_id")]

    patched = [
        f"{(v.get('package') or {}).get('name', '')} >= {v['first_patched_version']}"
        for v in advisory.get("vulnerabilities") or []
        if v.get("first_patched_version")
    ]

    return VulnInformation(
        key=advisory["ghsa_id"],
        title=advisory.get("summary") or advisory["ghsa_id"],
        description=advisory.get("description") or "",
        severity=_SEVERITY_MAP.get((advisory.get("severity") or "").lower(), Severity.LOW.value),
        cve=advisory.get("cve_id") or "",
        disclosure=(advisory.get("published_at") or "")[:10],
        solutions="Upgrade to " + ", ".join(patched) if patched else "",
        reference_links=list(advisory.get("references") or []),
        tags=[*ecosystems, *cwes],
        source=_ADVISORIES_URL,
        source_name=source_name,
        detail_link=advisory.get("html_url") or "",
    )


class GitHubAdvisoryAdapter(SourceAdapter):
    """Adapter for the GitHub global security advisories REST API."""

    def __init__(self, channel, *, token: str | None = None, **kwargs) -> None:
        super().__init__(channel, **kwargs)
        self._token = token

    @property
    def name(self) -> str:
        return "GitHubAdvisoryPlugin"

    @property
    def display_name(self) -> str:
        return "GitHub Advisory Database"

    @property
    def link(self) -> str:
        return "https://github.com/advisories"

    async def update(self, page_limit: int) -> None:
        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        url: str | None = _ADVISORIES_URL
        params: dict | None = {
            "type": "reviewed",
            "sort": "published",
            "direction": "desc",
            "per_page": _PER_PAGE,
        }
        sent = 0
        for _ in range(page_limit):
            if url is None:
                break
            resp = await self._get(url, params=params, headers=headers)
            for advisory in resp.json():
                if not advisory.get("ghsa_id"):
                    continue
                await self._channel.send(_to_record(advisory, self.name))
                sent += 1
            # The next-page URL already carries the query string.
            url, params = resp.links.get("next", {}).get("url"), None
        logger.info("Sent %d GitHub advisories", sent)
