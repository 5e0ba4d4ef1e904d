"""GitHub code search — look for public proof-of-concept material for a CVE."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone

import httpx

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"
_NUCLEI_PULLS_URL = f"{_GITHUB_API}/repos/projectdiscovery/nuclei-templates/pulls"
_REPO_SEARCH_URL = f"{_GITHUB_API}/search/repositories"
_SEARCH_LANGUAGES = ("Python", "JavaScript", "C", "C++", "Java", "PHP", "Ruby", "Rust", "C#")
_PER_PAGE = 100


def _cve_pattern(cve_id: str) -> re.Pattern[str]:
    return re.compile(rf"(?i)(?:\b|/|_){re.escape(cve_id)}(?:\b|/|_)")


def _headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def search_nuclei_pr(cve_id: str, *, token: str | None = None, timeout: float = 30) -> list[str]:
    """Return nuclei-templates pull requests whose title or body mention the CVE."""
    logger.info("Searching nuclei PRs for %s", cve_id)
    resp = httpx.get(
        _NUCLEI_PULLS_URL,
        params={"state": "all", "per_page": _PER_PAGE, "page": 1},
        headers=_headers(token),
        timeout=timeout,
    )
    resp.raise_for_status()
    pattern = _cve_pattern(cve_id)
    links = []
    for pull in resp.json():
        title = pull.get("title") or ""
        body = pull.get("body") or ""
        if (pattern.search(title) or pattern.search(body)) and pull.get("html_url"):
            links.append(pull["html_url"])
    return links


def search_github_repo(cve_id: str, *, token: str | None = None, timeout: float = 30) -> list[str]:
    """Return repositories created within the last year whose URL names the CVE."""
    logger.info("Searching GitHub repositories for %s", cve_id)
    last_year = (datetime.now(timezone.utc) - timedelta(days=365)).strftime("%Y-%m-%d")
    languages = " ".join(f"language:{lang}" for lang in _SEARCH_LANGUAGES)
    resp = httpx.get(
        _REPO_SEARCH_URL,
        params={
            "q": f"{languages} created:>{last_year} {cve_id}",
            "per_page": _PER_PAGE,
            "page": 1,
        },
        headers=_headers(token),
        timeout=timeout,
    )
    resp.raise_for_status()
    pattern = _cve_pattern(cve_id)
    return [
        repo["html_url"]
        for repo in resp.json().get("items", [])
        if repo.get("html_url") and pattern.search(repo["html_url"])
    ]


def search_github_poc(cve_id: str, *, token: str | None = None, timeout: float = 30) -> list[str]:
    """Collect PoC links for a CVE. Best effort: never raises.

    Each search fails independently; a failure only drops its own links.
    """
    links: list[str] = []
    for search in (search_nuclei_pr, search_github_repo):
        try:
            links.extend(search(cve_id, token=token, timeout=timeout))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("%s failed for %s: %s", search.__name__, cve_id, exc)
    return links
