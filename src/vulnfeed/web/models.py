"""Pydantic v2 request and response models for the vulnfeed web API."""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Plugins
# ---------------------------------------------------------------------------
class PluginInfo(BaseModel):
    name: str
    display_name: str
    link: str


class PluginListResponse(BaseModel):
    plugins: list[PluginInfo]


# ---------------------------------------------------------------------------
# Sync task
# ---------------------------------------------------------------------------
class SyncTaskRequest(BaseModel):
    name: str = Field("vuln-sync", min_length=1)
    interval_minutes: int = Field(..., ge=1, le=60)
    status: bool = True


class SyncTaskResponse(BaseModel):
    name: str
    interval_minutes: int
    status: bool
    job_id: str | None
    updated_at: str | None = None


# ---------------------------------------------------------------------------
# Ding bot
# ---------------------------------------------------------------------------
class DingBotRequest(BaseModel):
    access_token: str = Field(..., min_length=1)
    secret_token: str = Field(..., min_length=1)
    status: bool = True


class DingBotResponse(BaseModel):
    access_token: str
    secret_token: str
    status: bool


# ---------------------------------------------------------------------------
# Vulnerabilities
# ---------------------------------------------------------------------------
class VulnSummary(BaseModel):
    id: int
    key: str
    title: str
    severity: str
    cve: str
    disclosure: str
    tags: list[str]
    source_name: str
    pushed: bool
    updated_at: str


class VulnDetail(VulnSummary):
    description: str
    solutions: str
    reference_links: list[str]
    github_search: list[str]
    source: str
    detail_link: str
    reasons: list[str]
    created_at: str


class VulnListResponse(BaseModel):
    vulns: list[VulnSummary]
    total: int
    page: int
    per_page: int
    pages: int


# ---------------------------------------------------------------------------
# Security notices
# ---------------------------------------------------------------------------
class NoticeSummary(BaseModel):
    id: int
    key: str
    title: str
    product_name: str
    risk_level: str
    is_zero_day: bool
    publish_time: str
    tags: list[str]
    source_name: str
    pushed: bool
    updated_at: str


class NoticeDetail(NoticeSummary):
    description: str
    source: str
    detail_link: str
    reasons: list[str]
    created_at: str


class NoticeListResponse(BaseModel):
    notices: list[NoticeSummary]
    total: int
    page: int
    per_page: int
    pages: int


# ---------------------------------------------------------------------------
# Push
# ---------------------------------------------------------------------------
class PushResponse(BaseModel):
    id: int
    delivered: bool


# ---------------------------------------------------------------------------
# Pipeline runs
# ---------------------------------------------------------------------------
class PipelineRun(BaseModel):
    id: str
    run_type: str
    started_at: str
    finished_at: str
    status: str
    result: dict
    error: str | None


class PipelineRunListResponse(BaseModel):
    runs: list[PipelineRun]
    total: int
    page: int
    per_page: int
    pages: int
