"""Deterministic ``incident.json`` writer and reader.

Field order:
    meta:    id, createdAt, severity, trigger, scope, headline
    summary: likelyCause, whatHappened, nextSteps

``scope`` is always present and serialises as ``null`` when absent.
"""

from __future__ import annotations

import io
import json
from datetime import UTC, datetime
from typing import Any

from blackbox.models.incident import (
    IncidentId,
    IncidentMetadata,
    IncidentReport,
    IncidentSummary,
    Severity,
)
from blackbox.serialization.json_writer import JsonWriter


def format_instant(value: datetime) -> str:
    """Render *value* as an ISO-8601 UTC instant with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_incident_json(report: IncidentReport) -> str:
    """Serialise *report* to its canonical JSON text."""
    buffer = io.StringIO()
    writer = JsonWriter(buffer)
    writer.begin_object()
    _write_meta(writer, report.meta)
    _write_summary(writer, report.summary)
    writer.end_object()
    return buffer.getvalue()


def _write_meta(writer: JsonWriter, meta: IncidentMetadata) -> None:
    writer.name("meta").begin_object()
    writer.name("id").value(meta.id.value)
    writer.name("createdAt").value(format_instant(meta.created_at))
    writer.name("severity").value(meta.severity.value)
    writer.name("trigger").value(meta.trigger)
    writer.name("scope").value(meta.scope)
    writer.name("headline").value(meta.headline)
    writer.end_object()


def _write_summary(writer: JsonWriter, summary: IncidentSummary) -> None:
    writer.name("summary").begin_object()
    writer.name("likelyCause").value(summary.likely_cause)
    writer.name("whatHappened").string_array(summary.what_happened)
    writer.name("nextSteps").string_array(summary.next_steps)
    writer.end_object()


def parse_incident_json(text: str) -> IncidentReport:
    """Rebuild an IncidentReport from canonical ``incident.json`` text.

    Raises:
        ValueError: if the document is not valid JSON or a field is missing
            or has the wrong type.
    """
    try:
        doc = json.loads(text)
        meta: dict[str, Any] = doc["meta"]
        summary: dict[str, Any] = doc["summary"]
        scope = meta["scope"]
        return IncidentReport(
            meta=IncidentMetadata(
                id=IncidentId(str(meta["id"])),
                created_at=datetime.fromisoformat(meta["createdAt"]),
                severity=Severity(meta["severity"]),
                trigger=str(meta["trigger"]),
                scope=None if scope is None else str(scope),
                headline=str(meta["headline"]),
            ),
            summary=IncidentSummary(
                likely_cause=str(summary["likelyCause"]),
                what_happened=tuple(str(item) for item in summary["whatHappened"]),
                next_steps=tuple(str(item) for item in summary["nextSteps"]),
            ),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed incident.json: {exc!r}") from exc
