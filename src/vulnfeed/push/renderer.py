"""Markdown rendering of records for DingTalk messages."""

from __future__ import annotations

from string import Template

from vulnfeed.ingestion.records import SecurityNotice, VulnInformation

MAX_REFERENCE_LENGTH = 8

_VULN_HEADER = Template("""\
# $title

- CVE: $cve
- Severity: **$severity**
- Tags: $tags
- Disclosed: **$disclosure**
- Push reasons: $reasons
- Source: [$source_name]($source)""")

_NOTICE_HEADER = Template("""\
# $title

- Product: $product_name
- Risk level: **$risk_level**
- Zero-day: $zero_day
- Tags: $tags
- Published: **$publish_time**
- Push reasons: $reasons
- Source: [$source_name]($source)""")


def _numbered(links: list[str]) -> list[str]:
    return [f"{idx}. {link}" for idx, link in enumerate(links, start=1)]


def render_vuln_markdown(vuln: VulnInformation, max_references: int = MAX_REFERENCE_LENGTH) -> str:
    """Render a vulnerability as a DingTalk markdown message."""
    lines = [
        _VULN_HEADER.substitute(
            title=vuln.title,
            cve=vuln.cve or "none",
            severity=vuln.severity,
            tags=" ".join(vuln.tags),
            disclosure=vuln.disclosure,
            reasons=" ".join(vuln.reasons),
            source_name=vuln.source_name or vuln.source,
            source=vuln.source,
        ),
        "",
    ]
    if vuln.description:
        lines += ["### **Description**", vuln.description, ""]
    if vuln.solutions:
        lines += ["### **Solutions**", vuln.solutions, ""]
    references = vuln.reference_links[:max_references]
    if references:
        lines += ["### **References**", *_numbered(references), ""]
    if vuln.cve:
        lines.append("### **Code search**")
        lines += _numbered(vuln.github_search) if vuln.github_search else ["Not found yet"]
    return "\n".join(lines).rstrip()


def render_notice_markdown(notice: SecurityNotice) -> str:
    """Render a security notice as a DingTalk markdown message."""
    lines = [
        _NOTICE_HEADER.substitute(
            title=notice.title,
            product_name=notice.product_name or "unknown",
            risk_level=notice.risk_level,
            zero_day="yes" if notice.is_zero_day else "no",
            tags=" ".join(notice.tags),
            publish_time=notice.publish_time,
            reasons=" ".join(notice.reasons),
            source_name=notice.source_name or notice.source,
            source=notice.source,
        ),
        "",
    ]
    if notice.description:
        lines += ["### **Description**", notice.description, ""]
    if notice.detail_link:
        lines += ["### **Details**", notice.detail_link]
    return "\n".join(lines).rstrip()


def render_markdown(record: VulnInformation | SecurityNotice, max_references: int = MAX_REFERENCE_LENGTH) -> str:
    if isinstance(record, VulnInformation):
        return render_vuln_markdown(record, max_references)
    return render_notice_markdown(record)
