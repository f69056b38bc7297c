"""Shared test doubles for the Blackbox test suite."""

from __future__ import annotations

import threading
import zipfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

from blackbox.bundle.attachment import BundleAttachment
from blackbox.capture.protocols import BundleExtrasProvider, IncidentNotifier, RecordingDumper
from blackbox.models.incident import (
    IncidentId,
    IncidentMetadata,
    IncidentReport,
    IncidentSummary,
    Severity,
)
from blackbox.models.trigger import TriggerEvent
from blackbox.retention.deleter import FileDeleter

T0 = datetime(2026, 1, 11, 1, 2, 3, 456_000, tzinfo=UTC)


class MutableClock:
    """Clock whose time only moves when a test says so."""

    def __init__(self, start: datetime = T0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        step = delta if delta is not None else timedelta(**kwargs)
        with self._lock:
            self._now += step
            return self._now

    def set(self, value: datetime) -> None:
        with self._lock:
            self._now = value


def make_report(
    incident_id: str = "20260111-010203.456Z-000001",
    severity: Severity = Severity.DEGRADED,
    scope: str | None = "world-1",
    headline: str = "Heartbeat stalled world-1 (2500ms)",
    likely_cause: str = "Main loop blocked",
    what_happened: tuple[str, ...] = ("Triggered by HEARTBEAT_STALL", "No heartbeat for 2500ms"),
    next_steps: tuple[str, ...] = ("Open the recording", "Check the world thread"),
) -> IncidentReport:
    return IncidentReport(
        meta=IncidentMetadata(
            id=IncidentId(incident_id),
            created_at=T0,
            severity=severity,
            trigger="HEARTBEAT_STALL",
            scope=scope,
            headline=headline,
        ),
        summary=IncidentSummary(
            likely_cause=likely_cause,
            what_happened=what_happened,
            next_steps=next_steps,
        ),
    )


def zip_names(path: Path) -> list[str]:
    with zipfile.ZipFile(path) as archive:
        return archive.namelist()


def zip_text(path: Path, name: str) -> str:
    with zipfile.ZipFile(path) as archive:
        return archive.read(name).decode("utf-8")


class FakeDumper(RecordingDumper):
    """Writes a fixed payload; can be told to fail."""

    def __init__(self, payload: bytes = b"thread dump", fail: bool = False) -> None:
        self.payload = payload
        self.fail = fail
        self.targets: list[Path] = []

    def dump(self, target: Path) -> Path:
        self.targets.append(target)
        if self.fail:
            raise OSError("recorder unavailable")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.payload)
        return target


class RecordingNotifier(IncidentNotifier):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[IncidentReport, Path]] = []

    def on_incident(self, report: IncidentReport, bundle_path: Path) -> None:
        self.calls.append((report, bundle_path))
        if self.fail:
            raise RuntimeError("webhook down")


class StaticExtras(BundleExtrasProvider):
    def __init__(self, attachments: list[BundleAttachment] | None = None, fail: bool = False) -> None:
        self.attachments = attachments or []
        self.fail = fail

    def extras(self, report: IncidentReport, event: TriggerEvent) -> list[BundleAttachment]:
        if self.fail:
            raise RuntimeError("extras provider broke")
        return list(self.attachments)


class FlakyDeleter(FileDeleter):
    """Deletes for real except for file names listed in ``fail_names``."""

    def __init__(self, fail_names: set[str] | None = None) -> None:
        self.fail_names = fail_names or set()
        self.attempts: list[str] = []

    def delete(self, path: Path) -> None:
        self.attempts.append(path.name)
        if path.name in self.fail_names:
            raise PermissionError(f"cannot delete {path.name}")
        path.unlink()
