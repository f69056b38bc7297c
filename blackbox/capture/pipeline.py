"""Capture pipeline: trigger evaluation through bundle write and cleanup.

Steps for an accepted trigger, in order:

    1. allocate an incident id and build the report
    2. dump the recording to the temp directory
    3. collect extras (a failing provider contributes nothing)
    4. write the bundle to ``incident-<id>.zip``
    5. enforce retention            (best effort)
    6. notify                        (best effort)
    7. delete the temp recording     (best effort)

Only a failure in steps 1-4 makes :meth:`CapturePipeline.handle` return
None. Once the bundle exists, the incident id is returned no matter what
the later steps do.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import structlog

from blackbox.bundle.attachment import BundleAttachment
from blackbox.bundle.builder import BundleBuilder
from blackbox.bundle.naming import bundle_path
from blackbox.capture.protocols import (
    BundleExtrasProvider,
    IncidentNotifier,
    NoExtras,
    NoopNotifier,
    RecordingDumper,
)
from blackbox.clock import Clock, utc_now
from blackbox.incidents.ids import IncidentIdGenerator
from blackbox.models.incident import (
    IncidentId,
    IncidentMetadata,
    IncidentReport,
    IncidentSummary,
)
from blackbox.models.retention import RetentionPolicy
from blackbox.models.trigger import REASON_ATTR, STALL_MS_ATTR, TriggerEvent, TriggerKind, TriggerResult
from blackbox.observability.metrics import captures_total, triggers_total
from blackbox.retention.manager import RetentionManager
from blackbox.trigger.engine import TriggerEngine, parse_stall_ms

_log = structlog.get_logger(component="capture.pipeline")

_RECORDING_SUFFIX = ".txt"


@dataclass(frozen=True)
class CapturePolicy:
    """Policies applied after each successful capture."""

    retention: RetentionPolicy


class CapturePipeline:
    """Turns trigger events into incident bundles.

    Capture work is serialised by an internal lock: at most one bundle is
    being produced at any time, even when several threads call
    :meth:`handle` concurrently.
    """

    def __init__(
        self,
        trigger_engine: TriggerEngine,
        dumper: RecordingDumper,
        incident_dir: Path,
        temp_dir: Path,
        policy: CapturePolicy,
        bundle_builder: BundleBuilder | None = None,
        retention_manager: RetentionManager | None = None,
        notifier: IncidentNotifier | None = None,
        extras_provider: BundleExtrasProvider | None = None,
        clock: Clock = utc_now,
        id_generator: IncidentIdGenerator | None = None,
    ) -> None:
        self._engine = trigger_engine
        self._dumper = dumper
        self._incident_dir = incident_dir
        self._temp_dir = temp_dir
        self._policy = policy
        self._builder = bundle_builder or BundleBuilder()
        self._retention = retention_manager or RetentionManager(clock=clock)
        self._notifier = notifier or NoopNotifier()
        self._extras = extras_provider or NoExtras()
        self._clock = clock
        self._ids = id_generator or IncidentIdGenerator(clock)
        self._capture_lock = threading.Lock()

    @property
    def incident_dir(self) -> Path:
        return self._incident_dir

    def handle(self, event: TriggerEvent) -> IncidentId | None:
        """Evaluate *event* and, if accepted, capture an incident bundle.

        Never raises. Returns the new incident id, or None when the trigger
        was rejected or the bundle could not be produced.
        """
        try:
            result = self._engine.evaluate(event)
        except Exception as exc:
            _log.warning("trigger_evaluation_failed", kind=event.kind_name, scope=event.scope, error=str(exc))
            captures_total.labels(outcome="failed").inc()
            return None

        triggers_total.labels(decision=result.decision.value).inc()
        if not result.accepted:
            return None

        with self._capture_lock:
            return self._capture(event, result)

    def _capture(self, event: TriggerEvent, result: TriggerResult) -> IncidentId | None:
        created_at = event.at if event.at is not None else self._clock()
        temp_recording: Path | None = None
        try:
            incident_id = self._ids.next(created_at)
            report = build_report(incident_id, created_at, result, event)

            self._temp_dir.mkdir(parents=True, exist_ok=True)
            self._incident_dir.mkdir(parents=True, exist_ok=True)

            temp_recording = self._temp_dir / f"{incident_id}{_RECORDING_SUFFIX}"
            temp_recording = self._dumper.dump(temp_recording)

            output_zip = bundle_path(self._incident_dir, incident_id)
            self._builder.build(report, temp_recording, output_zip, self._collect_extras(report, event))
        except Exception as exc:
            _log.warning("capture_failed", kind=event.kind_name, scope=event.scope, error=str(exc))
            captures_total.labels(outcome="failed").inc()
            if temp_recording is not None:
                self._cleanup(temp_recording)
            return None

        captures_total.labels(outcome="captured").inc()
        _log.info(
            "incident_captured",
            incident_id=str(incident_id),
            severity=report.meta.severity.value,
            trigger=report.meta.trigger,
            scope=report.meta.scope,
            bundle=str(output_zip),
        )

        try:
            self._retention.enforce(self._incident_dir, self._policy.retention)
        except Exception as exc:
            _log.warning("retention_enforcement_failed", incident_id=str(incident_id), error=str(exc))

        try:
            self._notifier.on_incident(report, output_zip)
        except Exception as exc:
            _log.warning("incident_notification_failed", incident_id=str(incident_id), error=str(exc))

        self._cleanup(temp_recording)
        return incident_id

    def _collect_extras(self, report: IncidentReport, event: TriggerEvent) -> list[BundleAttachment]:
        try:
            return list(self._extras.extras(report, event))
        except Exception as exc:
            _log.warning("bundle_extras_failed", incident_id=str(report.meta.id), error=str(exc))
            return []

    @staticmethod
    def _cleanup(recording: Path) -> None:
        try:
            recording.unlink(missing_ok=True)
        except Exception as exc:
            _log.warning("temp_recording_cleanup_failed", path=str(recording), error=str(exc))


def build_report(
    incident_id: IncidentId,
    created_at: datetime,
    result: TriggerResult,
    event: TriggerEvent,
) -> IncidentReport:
    """Assemble the report for an accepted trigger."""
    meta = IncidentMetadata(
        id=incident_id,
        created_at=created_at,
        severity=result.severity,
        trigger=event.kind_name,
        scope=event.scope,
        headline=result.headline,
    )

    what_happened = [f"Triggered by {event.kind_name}"]
    next_steps = ["Review the incident report and recording."]
    likely_cause = "Unknown"

    if event.kind == TriggerKind.HEARTBEAT_STALL:
        stall_ms = parse_stall_ms(event.attributes.get(STALL_MS_ATTR))
        likely_cause = f"The {event.scope} loop stopped reporting heartbeats"
        what_happened.append(f"No heartbeat from {event.scope} for {stall_ms}ms")
        next_steps.insert(0, f"Look for the {event.scope} thread in the recording to see where it was blocked.")
    elif event.kind == TriggerKind.MANUAL:
        reason = event.attributes.get(REASON_ATTR, "").strip()
        if reason:
            what_happened.append(f"Operator reason: {reason}")

    return IncidentReport(
        meta=meta,
        summary=IncidentSummary(
            likely_cause=likely_cause,
            what_happened=tuple(what_happened),
            next_steps=tuple(next_steps),
        ),
    )
