"""Blackbox REST API route handlers.

Endpoints (all under /api/v1):
    GET  /health               -- liveness
    GET  /status               -- runtime, retention and trigger settings
    GET  /incidents?limit=N    -- newest-first bundle listing
    GET  /incidents/{id}       -- report of one bundle
    POST /capture              -- request a manual capture
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from blackbox.api.schemas import (
    CaptureRequest,
    CaptureResponse,
    ErrorResponse,
    HealthResponse,
    IncidentDetailResponse,
    IncidentListItem,
    IncidentListResponse,
    IncidentMetaView,
    IncidentSummaryView,
    RetentionView,
    StatusResponse,
    TriggerView,
)
from blackbox.bundle.catalog import find_incident, list_incidents
from blackbox.bundle.naming import bundle_path
from blackbox.bundle.reader import BundleReadError, read_bundle_report, read_headline
from blackbox.runtime import CAPTURE_SKIPPED_MESSAGE, MANUAL_SCOPE, BlackboxRuntime

_log = structlog.get_logger(component="api.routes")

router = APIRouter()


def _runtime(request: Request) -> BlackboxRuntime:
    return request.app.state.runtime  # type: ignore[no-any-return]


def _not_found(incident_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=ErrorResponse(
            error="INCIDENT_NOT_FOUND",
            detail=f"No incident bundle with id {incident_id!r}.",
        ).model_dump(),
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    from blackbox import __version__

    return HealthResponse(status="ok", version=__version__)


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    runtime = _runtime(request)
    snapshot = await asyncio.to_thread(runtime.status)
    retention = runtime.config.retention
    trigger = runtime.config.trigger
    return StatusResponse(
        running=snapshot.running,
        incident_dir=str(snapshot.incident_dir),
        incident_count=snapshot.incident_count,
        watched_scopes=snapshot.watched_scopes,
        stalled_scopes=snapshot.stalled_scopes,
        last_incident_id=snapshot.last_incident_id,
        last_incident_at=snapshot.last_incident_at,
        retention=RetentionView(
            max_count=retention.max_count,
            max_total_bytes=retention.max_total_bytes,
            max_age_seconds=None if retention.max_age is None else retention.max_age.total_seconds(),
        ),
        triggers=TriggerView(
            cooldown_seconds=trigger.cooldown.total_seconds(),
            debounce_seconds=trigger.debounce.total_seconds(),
            stall_degraded_ms=trigger.stall_degraded_ms,
            stall_critical_ms=trigger.stall_critical_ms,
        ),
        webhook_enabled=runtime.config.webhook.enabled,
    )


@router.get("/incidents", response_model=IncidentListResponse)
async def incidents(request: Request, limit: int = Query(default=10, ge=1, le=500)) -> IncidentListResponse:
    runtime = _runtime(request)

    def _collect() -> list[IncidentListItem]:
        items = []
        for entry in list_incidents(runtime.incident_dir, limit):
            try:
                size = entry.path.stat().st_size
            except OSError:
                size = 0
            items.append(
                IncidentListItem(
                    id=entry.id,
                    created_at=entry.created_at,
                    headline=read_headline(entry.path),
                    size_bytes=size,
                )
            )
        return items

    return IncidentListResponse(incidents=await asyncio.to_thread(_collect))


@router.get(
    "/incidents/{incident_id}",
    response_model=IncidentDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def incident_detail(request: Request, incident_id: str) -> IncidentDetailResponse | JSONResponse:
    runtime = _runtime(request)
    entry = find_incident(runtime.incident_dir, incident_id)
    if entry is None:
        return _not_found(incident_id)
    try:
        report = await asyncio.to_thread(read_bundle_report, entry.path)
    except BundleReadError as exc:
        _log.warning("incident_read_failed", incident_id=incident_id, error=exc.reason)
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(error="INCIDENT_UNREADABLE", detail=exc.reason).model_dump(),
        )

    meta = report.meta
    summary = report.summary
    return IncidentDetailResponse(
        meta=IncidentMetaView(
            id=meta.id.value,
            created_at=meta.created_at,
            severity=meta.severity.value,
            trigger=meta.trigger,
            scope=meta.scope,
            headline=meta.headline,
        ),
        summary=IncidentSummaryView(
            likely_cause=summary.likely_cause,
            what_happened=list(summary.what_happened),
            next_steps=list(summary.next_steps),
        ),
        bundle_path=str(entry.path),
    )


@router.post("/capture", response_model=CaptureResponse)
async def capture(request: Request, body: CaptureRequest | None = None) -> CaptureResponse:
    runtime = _runtime(request)
    body = body or CaptureRequest()
    scope = body.scope if body.scope and body.scope.strip() else MANUAL_SCOPE

    future = runtime.submit_capture(runtime.manual_event(body.reason, scope))
    incident_id = await asyncio.wrap_future(future)
    if incident_id is None:
        return CaptureResponse(captured=False, message=CAPTURE_SKIPPED_MESSAGE)
    return CaptureResponse(
        captured=True,
        incident_id=incident_id,
        bundle_path=str(bundle_path(runtime.incident_dir, incident_id)),
        message=f"Captured incident {incident_id}",
    )
