"""Canonical record shapes emitted by source adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union


class Severity(str, Enum):
    """Severity / risk level labels used by the shipped adapters."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


@dataclass(frozen=True)
class VulnInformation:
    """A vulnerability as reported by one vulnerability feed."""

    TABLE: ClassVar[str] = "vuln_information"
    KIND: ClassVar[str] = "vuln"
    LEVEL_FIELD: ClassVar[str] = "severity"
    JSON_FIELDS: ClassVar[tuple[str, ...]] = (
        "reference_links", "tags", "github_search", "reasons",
    )
    BOOL_FIELDS: ClassVar[tuple[str, ...]] = ("pushed",)

    key: str
    title: str
    severity: str
    description: str = ""
    cve: str = ""
    disclosure: str = ""
    solutions: str = ""
    reference_links: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    github_search: list[str] = field(default_factory=list)
    source: str = ""
    source_name: str = ""
    detail_link: str = ""
    reasons: list[str] = field(default_factory=list)
    pushed: bool = False

    @property
    def level(self) -> str:
        return self.severity


@dataclass(frozen=True)
class SecurityNotice:
    """A vendor security notice (advisory bulletin)."""

    TABLE: ClassVar[str] = "security_notice"
    KIND: ClassVar[str] = "notice"
    LEVEL_FIELD: ClassVar[str] = "risk_level"
    JSON_FIELDS: ClassVar[tuple[str, ...]] = ("tags", "reasons")
    BOOL_FIELDS: ClassVar[tuple[str, ...]] = ("is_zero_day", "pushed")

    key: str
    title: str
    risk_level: str
    product_name: str = ""
    description: str = ""
    source: str = ""
    source_name: str = ""
    is_zero_day: bool = False
    publish_time: str = ""
    detail_link: str = ""
    tags: list[str] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    pushed: bool = False

    @property
    def level(self) -> str:
        return self.risk_level


CanonicalRecord = Union[VulnInformation, SecurityNotice]
RecordClass = Union[type[VulnInformation], type[SecurityNotice]]


@dataclass(frozen=True)
class StoredRecord:
    """A canonical record together with the identity fields owned by the store."""

    id: int
    created_at: str
    updated_at: str
    record: CanonicalRecord
