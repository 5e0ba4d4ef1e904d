"""API route handlers for the vulnfeed web API."""

from __future__ import annotations

import dataclasses
import logging
import math
import sqlite3

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from vulnfeed.ingestion.records import RecordClass, SecurityNotice, StoredRecord, VulnInformation
from vulnfeed.ingestion.registry import registered_adapters
from vulnfeed.push.dingbot import DeliveryError
from vulnfeed.push.dispatcher import dispatch
from vulnfeed.scheduler import SchedulerError
from vulnfeed.storage import ding_bot, sync_task
from vulnfeed.storage.connection import get_connection
from vulnfeed.web.models import (
    DingBotRequest,
    DingBotResponse,
    NoticeDetail,
    NoticeListResponse,
    NoticeSummary,
    PipelineRunListResponse,
    PluginInfo,
    PluginListResponse,
    PushResponse,
    SyncTaskRequest,
    SyncTaskResponse,
    VulnDetail,
    VulnListResponse,
    VulnSummary,
)
from vulnfeed.web.queries import (
    get_ding_bot,
    get_stored,
    get_sync_task,
    list_pipeline_runs,
    list_stored,
)

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter()


def _flatten(stored: StoredRecord) -> dict:
    return {
        **dataclasses.asdict(stored.record),
        "id": stored.id,
        "created_at": stored.created_at,
        "updated_at": stored.updated_at,
    }


def _mask(token: str) -> str:
    return "****" + token[-4:] if len(token) > 4 else "****"


def _sync_task_response(task: sync_task.SyncTask) -> SyncTaskResponse:
    return SyncTaskResponse(
        name=task.name,
        interval_minutes=task.interval_minutes,
        status=task.status,
        job_id=task.job_id,
        updated_at=task.updated_at,
    )


@health_router.get("/health")
def health(request: Request) -> JSONResponse:
    """Check database connectivity and return health status."""
    database_path = request.app.state.database_path
    try:
        with get_connection(database_path) as conn:
            conn.execute("SELECT 1")
        return JSONResponse({"status": "healthy", "database": "ok"})
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Health check failed: %s", exc)
        return JSONResponse(
            {"status": "unhealthy", "database": "error", "detail": str(exc)},
            status_code=503,
        )


@router.get("/plugins", response_model=PluginListResponse)
def plugins() -> PluginListResponse:
    return PluginListResponse(
        plugins=[
            PluginInfo(name=a.name, display_name=a.display_name, link=a.link)
            for a in registered_adapters()
        ]
    )


# ---------------------------------------------------------------------------
# Sync task
# ---------------------------------------------------------------------------
@router.get("/sync-task", response_model=SyncTaskResponse)
def get_sync_task_config(request: Request) -> SyncTaskResponse:
    task = get_sync_task(request.app.state.database_path)
    if task is None:
        raise HTTPException(status_code=404, detail="Sync task not configured")
    return _sync_task_response(task)


@router.post("/sync-task", response_model=SyncTaskResponse)
def update_sync_task(request: Request, body: SyncTaskRequest) -> SyncTaskResponse:
    """Persist the sync task and bring the live scheduler in line with it."""
    database_path = request.app.state.database_path
    scheduler = request.app.state.scheduler
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not running")
    try:
        if body.status:
            scheduler.reconfigure(body.interval_minutes)
        else:
            scheduler.disable()
    except SchedulerError as exc:
        logger.exception("Sync task reconfiguration failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    with get_connection(database_path, immediate=True) as conn:
        sync_task.upsert(
            conn,
            name=body.name,
            interval_minutes=body.interval_minutes,
            status=body.status,
        )
        task = sync_task.first(conn)
    return _sync_task_response(task)


# ---------------------------------------------------------------------------
# Ding bot
# ---------------------------------------------------------------------------
@router.get("/ding-bot", response_model=DingBotResponse)
def get_ding_bot_config(request: Request) -> DingBotResponse:
    config = get_ding_bot(request.app.state.database_path)
    if config is None:
        raise HTTPException(status_code=404, detail="Ding bot not configured")
    return DingBotResponse(
        access_token=_mask(config.access_token),
        secret_token=_mask(config.secret_token),
        status=config.status,
    )


@router.post("/ding-bot", response_model=DingBotResponse)
def update_ding_bot_config(request: Request, body: DingBotRequest) -> DingBotResponse:
    with get_connection(request.app.state.database_path) as conn:
        ding_bot.upsert(
            conn,
            access_token=body.access_token,
            secret_token=body.secret_token,
            status=body.status,
        )
    logger.info("Ding bot config updated (status=%s)", body.status)
    return DingBotResponse(
        access_token=_mask(body.access_token),
        secret_token=_mask(body.secret_token),
        status=body.status,
    )


# ---------------------------------------------------------------------------
# Vulnerabilities and notices
# ---------------------------------------------------------------------------
@router.get("/vulns", response_model=VulnListResponse)
def vulns(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> VulnListResponse:
    rows, total = list_stored(
        request.app.state.database_path, VulnInformation, page=page, per_page=per_page,
    )
    pages = math.ceil(total / per_page) if total else 0
    return VulnListResponse(
        vulns=[VulnSummary(**_flatten(r)) for r in rows],
        total=total,
        page=page,
        per_page=per_page,
        pages=pages,
    )


@router.get("/vulns/{vuln_id}", response_model=VulnDetail)
def vuln_by_id(request: Request, vuln_id: int) -> VulnDetail:
    stored = get_stored(request.app.state.database_path, VulnInformation, vuln_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="Vulnerability not found")
    return VulnDetail(**_flatten(stored))


@router.get("/notices", response_model=NoticeListResponse)
def notices(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> NoticeListResponse:
    rows, total = list_stored(
        request.app.state.database_path, SecurityNotice, page=page, per_page=per_page,
    )
    pages = math.ceil(total / per_page) if total else 0
    return NoticeListResponse(
        notices=[NoticeSummary(**_flatten(r)) for r in rows],
        total=total,
        page=page,
        per_page=per_page,
        pages=pages,
    )


@router.get("/notices/{notice_id}", response_model=NoticeDetail)
def notice_by_id(request: Request, notice_id: int) -> NoticeDetail:
    stored = get_stored(request.app.state.database_path, SecurityNotice, notice_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="Notice not found")
    return NoticeDetail(**_flatten(stored))


def _push(request: Request, cls: RecordClass, record_id: int) -> PushResponse:
    database_path = request.app.state.database_path
    config = request.app.state.config
    if get_stored(database_path, cls, record_id) is None:
        raise HTTPException(status_code=404, detail=f"{cls.KIND} {record_id} not found")
    try:
        delivered = dispatch(
            database_path,
            cls,
            record_id,
            api_url=config.ding_api_url,
            timeout=config.http_timeout_seconds,
            max_reference_links=config.max_reference_links,
        )
    except DeliveryError as exc:
        logger.warning("Manual push of %s %d failed: %s", cls.KIND, record_id, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return PushResponse(id=record_id, delivered=delivered)


@router.post("/vulns/{vuln_id}/push", response_model=PushResponse)
def push_vuln(request: Request, vuln_id: int) -> PushResponse:
    return _push(request, VulnInformation, vuln_id)


@router.post("/notices/{notice_id}/push", response_model=PushResponse)
def push_notice(request: Request, notice_id: int) -> PushResponse:
    return _push(request, SecurityNotice, notice_id)


# ---------------------------------------------------------------------------
# Pipeline runs
# ---------------------------------------------------------------------------
@router.get("/runs", response_model=PipelineRunListResponse)
def runs(
    request: Request,
    run_type: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
) -> PipelineRunListResponse:
    database_path = request.app.state.database_path
    rows, total = list_pipeline_runs(
        database_path, run_type=run_type, page=page, per_page=per_page,
    )
    pages = math.ceil(total / per_page) if total else 0
    return PipelineRunListResponse(
        runs=rows,
        total=total,
        page=page,
        per_page=per_page,
        pages=pages,
    )
