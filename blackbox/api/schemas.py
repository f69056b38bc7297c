"""Pydantic request/response models for the Blackbox REST API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Uniform error envelope."""

    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str
    version: str


class RetentionView(BaseModel):
    max_count: int
    max_total_bytes: int
    max_age_seconds: float | None


class TriggerView(BaseModel):
    cooldown_seconds: float
    debounce_seconds: float
    stall_degraded_ms: int
    stall_critical_ms: int


class StatusResponse(BaseModel):
    running: bool
    incident_dir: str
    incident_count: int
    watched_scopes: list[str]
    stalled_scopes: list[str]
    last_incident_id: str | None
    last_incident_at: datetime | None
    retention: RetentionView
    triggers: TriggerView
    webhook_enabled: bool


class IncidentListItem(BaseModel):
    id: str
    created_at: datetime | None
    headline: str | None
    size_bytes: int


class IncidentListResponse(BaseModel):
    incidents: list[IncidentListItem]


class IncidentMetaView(BaseModel):
    id: str
    created_at: datetime
    severity: str
    trigger: str
    scope: str | None
    headline: str


class IncidentSummaryView(BaseModel):
    likely_cause: str
    what_happened: list[str]
    next_steps: list[str]


class IncidentDetailResponse(BaseModel):
    meta: IncidentMetaView
    summary: IncidentSummaryView
    bundle_path: str


class CaptureRequest(BaseModel):
    """Manual capture request body. Both fields are optional."""

    reason: str | None = Field(default=None, max_length=500)
    scope: str | None = Field(default=None, max_length=200)


class CaptureResponse(BaseModel):
    captured: bool
    incident_id: str | None = None
    bundle_path: str | None = None
    message: str
