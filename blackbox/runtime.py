"""Embedded Blackbox runtime.

Owns the heartbeat registry, stall detector, trigger engine and capture
pipeline, plus two threads of its own:

    blackbox-scheduler -- ticks heartbeats and schedules stall checks
    blackbox-worker    -- runs stall checks and captures, one at a time

Watched asyncio loops are beaten by posting ``registry.beat`` onto the loop
itself with ``call_soon_threadsafe``. A loop that is blocked never runs the
callback, stops beating, and is reported as stalled. Each scope has at most
one beat in flight.
"""

from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import structlog

from blackbox.bundle.catalog import list_incidents
from blackbox.capture.extras import ProcessExtrasProvider
from blackbox.capture.pipeline import CapturePipeline, CapturePolicy
from blackbox.capture.protocols import BundleExtrasProvider, IncidentNotifier, RecordingDumper
from blackbox.clock import Clock, utc_now
from blackbox.models.config import BlackboxConfig
from blackbox.models.trigger import REASON_ATTR, TriggerEvent, TriggerKind
from blackbox.notifications import build_notifier
from blackbox.observability.metrics import heartbeat_stalls_total
from blackbox.recorder.stacks import StackDumpRecorder
from blackbox.retention.manager import RetentionManager
from blackbox.trigger.engine import TriggerEngine
from blackbox.trigger.heartbeat import HeartbeatRegistry, HeartbeatStallDetector

_log = structlog.get_logger(component="runtime")

MANUAL_SCOPE = "server"
CAPTURE_SKIPPED_MESSAGE = "Capture skipped or failed (cooldown/debounce or error)."


@dataclass(frozen=True)
class RuntimeStatus:
    """Point-in-time view of the runtime for operator surfaces."""

    running: bool
    incident_dir: Path
    incident_count: int
    watched_scopes: list[str] = field(default_factory=list)
    stalled_scopes: list[str] = field(default_factory=list)
    last_incident_id: str | None = None
    last_incident_at: datetime | None = None


class BlackboxRuntime:
    """Wires the capture core together and drives it from background threads.

    Args:
        config:          Resolved configuration.
        clock:           Wall clock shared by every component.
        dumper:          Recording source. Defaults to a thread-stack dump.
        notifier:        Incident notifier. Defaults to the configured webhook.
        extras_provider: Extra bundle attachments. Defaults to process info.
    """

    def __init__(
        self,
        config: BlackboxConfig,
        clock: Clock = utc_now,
        dumper: RecordingDumper | None = None,
        notifier: IncidentNotifier | None = None,
        extras_provider: BundleExtrasProvider | None = None,
    ) -> None:
        self._config = config
        self._clock = clock

        self.registry = HeartbeatRegistry(clock)
        self.detector = HeartbeatStallDetector(self.registry, config.trigger.stall_degraded_ms, clock)
        self.engine = TriggerEngine(config.trigger, clock)
        self._notifier = notifier if notifier is not None else build_notifier(config.webhook, clock)
        self.pipeline = CapturePipeline(
            trigger_engine=self.engine,
            dumper=dumper or StackDumpRecorder(clock),
            incident_dir=config.incident_dir,
            temp_dir=config.temp_dir,
            policy=CapturePolicy(retention=config.retention),
            retention_manager=RetentionManager(clock=clock),
            notifier=self._notifier,
            extras_provider=extras_provider or ProcessExtrasProvider(),
            clock=clock,
        )

        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="blackbox-worker")
        self._scheduler: threading.Thread | None = None
        self._stopping = threading.Event()
        self._closed = False

        self._lock = threading.Lock()
        self._watched: dict[str, asyncio.AbstractEventLoop] = {}
        self._pending_beats: set[str] = set()
        self._stall_check_running = False
        self._in_flight: set[Future[object]] = set()
        self._last_incident_id: str | None = None
        self._last_incident_at: datetime | None = None

    @property
    def config(self) -> BlackboxConfig:
        return self._config

    @property
    def incident_dir(self) -> Path:
        return self._config.incident_dir

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.is_alive()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the scheduler thread. Calling start() twice is a no-op."""
        if self._closed:
            raise RuntimeError("runtime is closed")
        if self._scheduler is not None:
            return
        self._scheduler = threading.Thread(target=self._run_scheduler, name="blackbox-scheduler", daemon=True)
        self._scheduler.start()
        _log.info(
            "runtime_started",
            incident_dir=str(self.incident_dir),
            heartbeat_interval_ms=self._config.scheduler.heartbeat_interval_ms,
            stall_check_interval_ms=self._config.scheduler.stall_check_interval_ms,
        )

    def close(self) -> None:
        """Stop periodic work and wait for in-flight work up to the shutdown grace.

        Work still running after the grace period is abandoned.
        """
        if self._closed:
            return
        self._closed = True
        self._stopping.set()

        grace = self._config.scheduler.shutdown_grace.total_seconds()
        if self._scheduler is not None:
            self._scheduler.join(timeout=grace)

        with self._lock:
            self._watched.clear()
            self._pending_beats.clear()
            in_flight = set(self._in_flight)

        self._worker.shutdown(wait=False, cancel_futures=True)
        if in_flight:
            _done, not_done = wait_futures(in_flight, timeout=grace)
            if not_done:
                _log.warning("runtime_work_abandoned", pending=len(not_done), grace_s=grace)

        close_notifier = getattr(self._notifier, "close", None)
        if callable(close_notifier):
            try:
                close_notifier(timeout=grace)
            except Exception as exc:
                _log.warning("notifier_close_failed", error=str(exc))
        _log.info("runtime_stopped")

    # ------------------------------------------------------------------
    # Heartbeats
    # ------------------------------------------------------------------

    def watch_loop(self, scope: str, loop: asyncio.AbstractEventLoop) -> None:
        """Beat *scope* from inside *loop* on every heartbeat tick."""
        if not scope or not scope.strip():
            raise ValueError("scope must be non-blank")
        with self._lock:
            self._watched[scope] = loop
        _log.info("scope_watched", scope=scope)

    def unwatch(self, scope: str) -> None:
        with self._lock:
            self._watched.pop(scope, None)
            self._pending_beats.discard(scope)
        self.registry.forget(scope)
        _log.info("scope_unwatched", scope=scope)

    def beat(self, scope: str) -> None:
        """Record a heartbeat directly, for hosts that drive their own ticks."""
        self.registry.beat(scope)

    def watched_scopes(self) -> list[str]:
        with self._lock:
            return sorted(self._watched)

    def _tick_heartbeats(self) -> None:
        with self._lock:
            watched = list(self._watched.items())

        for scope, loop in watched:
            if loop.is_closed():
                self.unwatch(scope)
                continue
            with self._lock:
                if scope in self._pending_beats:
                    continue
                self._pending_beats.add(scope)
            try:
                loop.call_soon_threadsafe(self._beat_on_loop, scope)
            except RuntimeError as exc:
                with self._lock:
                    self._pending_beats.discard(scope)
                _log.warning("heartbeat_post_failed", scope=scope, error=str(exc))

    def _beat_on_loop(self, scope: str) -> None:
        try:
            self.registry.beat(scope)
        except Exception as exc:
            _log.warning("heartbeat_beat_failed", scope=scope, error=str(exc))
        finally:
            with self._lock:
                self._pending_beats.discard(scope)

    # ------------------------------------------------------------------
    # Stall checks
    # ------------------------------------------------------------------

    def _schedule_stall_check(self) -> None:
        with self._lock:
            if self._stall_check_running:
                return
            self._stall_check_running = True
        try:
            self._submit(self._run_stall_check)
        except RuntimeError:
            # Worker already shut down.
            with self._lock:
                self._stall_check_running = False

    def _run_stall_check(self) -> None:
        try:
            for event in self.detector.check():
                heartbeat_stalls_total.inc()
                self.capture(event)
        except Exception as exc:
            _log.warning("stall_check_failed", error=str(exc))
        finally:
            with self._lock:
                self._stall_check_running = False

    def _run_scheduler(self) -> None:
        heartbeat_every = self._config.scheduler.heartbeat_interval_ms / 1000
        stall_every = self._config.scheduler.stall_check_interval_ms / 1000
        next_heartbeat = time.monotonic()
        next_stall_check = next_heartbeat + stall_every

        while not self._stopping.is_set():
            now = time.monotonic()
            if now >= next_heartbeat:
                try:
                    self._tick_heartbeats()
                except Exception as exc:
                    _log.warning("heartbeat_tick_failed", error=str(exc))
                next_heartbeat += heartbeat_every
                if next_heartbeat < now:
                    next_heartbeat = now + heartbeat_every
            if now >= next_stall_check:
                self._schedule_stall_check()
                next_stall_check += stall_every
                if next_stall_check < now:
                    next_stall_check = now + stall_every
            self._stopping.wait(max(0.0, min(next_heartbeat, next_stall_check) - time.monotonic()))

    # ------------------------------------------------------------------
    # Captures
    # ------------------------------------------------------------------

    def capture(self, event: TriggerEvent) -> str | None:
        """Run *event* through the pipeline on the calling thread."""
        try:
            incident_id = self.pipeline.handle(event)
        except Exception as exc:
            _log.warning("capture_raised", kind=event.kind_name, scope=event.scope, error=str(exc))
            return None
        if incident_id is None:
            return None
        with self._lock:
            self._last_incident_id = incident_id.value
            self._last_incident_at = event.at if event.at is not None else self._clock()
        return incident_id.value

    def capture_manual(self, reason: str | None = None, scope: str = MANUAL_SCOPE) -> str | None:
        """Request a manual capture, optionally tagged with an operator reason."""
        return self.capture(self.manual_event(reason, scope))

    def manual_event(self, reason: str | None = None, scope: str = MANUAL_SCOPE) -> TriggerEvent:
        attributes = {REASON_ATTR: reason} if reason and reason.strip() else {}
        return TriggerEvent(kind=TriggerKind.MANUAL, scope=scope, at=self._clock(), attributes=attributes)

    def submit_capture(self, event: TriggerEvent) -> Future[str | None]:
        """Queue *event* on the worker thread and return its future."""
        return self._submit(self.capture, event)

    def _submit(self, fn, *args):  # type: ignore[no-untyped-def]
        future = self._worker.submit(fn, *args)
        with self._lock:
            self._in_flight.add(future)
        future.add_done_callback(self._forget_future)
        return future

    def _forget_future(self, future: Future[object]) -> None:
        with self._lock:
            self._in_flight.discard(future)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def last_incident_id(self) -> str | None:
        with self._lock:
            return self._last_incident_id

    @property
    def last_incident_at(self) -> datetime | None:
        with self._lock:
            return self._last_incident_at

    def status(self) -> RuntimeStatus:
        with self._lock:
            last_id = self._last_incident_id
            last_at = self._last_incident_at
        return RuntimeStatus(
            running=self.running,
            incident_dir=self.incident_dir,
            incident_count=len(list_incidents(self.incident_dir)),
            watched_scopes=self.watched_scopes(),
            stalled_scopes=self.detector.stalled_scopes(),
            last_incident_id=last_id,
            last_incident_at=last_at,
        )
