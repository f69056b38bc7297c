"""Rate-limited incident webhook notifier.

Posts ``{"content": "[SEVERITY] headline (scope: X)", "username": ...}`` to
a chat-style webhook. The cooldown is measured from the last send
*attempt*: a failed delivery still consumes the slot. Delivery happens on
an executor, so :meth:`WebhookNotifier.on_incident` returns immediately.
"""

from __future__ import annotations

import io
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from datetime import datetime
from pathlib import Path

import httpx
import structlog

from blackbox.capture.protocols import IncidentNotifier
from blackbox.clock import Clock, utc_now
from blackbox.models.config import WebhookConfig
from blackbox.models.incident import IncidentReport
from blackbox.notifications.transport import WebhookTransport
from blackbox.observability.metrics import notifications_total
from blackbox.serialization.json_writer import JsonWriter

_log = structlog.get_logger(component="notifications.webhook")


def build_payload(report: IncidentReport, username: str = "") -> str:
    meta = report.meta
    scope = meta.scope if meta.scope is not None else "unknown"
    content = f"[{meta.severity.value}] {meta.headline} (scope: {scope})"

    buffer = io.StringIO()
    writer = JsonWriter(buffer)
    writer.begin_object()
    writer.name("content").value(content)
    if username.strip():
        writer.name("username").value(username)
    writer.end_object()
    return buffer.getvalue()


class WebhookNotifier(IncidentNotifier):
    """Sends at most one webhook per cooldown window."""

    def __init__(
        self,
        config: WebhookConfig,
        transport: WebhookTransport,
        clock: Clock = utc_now,
        executor: Executor | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._clock = clock
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="blackbox-webhook")
        self._lock = threading.Lock()
        self._last_sent_at: datetime | None = None
        self._deliveries: set[Future[bool]] = set()

    def on_incident(self, report: IncidentReport, bundle_path: Path) -> None:
        if not self._config.enabled:
            return
        if not self._claim_slot(self._clock()):
            _log.debug("webhook_rate_limited", incident_id=str(report.meta.id))
            return

        url = self._config.url.strip()
        try:
            httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as exc:
            _log.warning("webhook_invalid_url", error=str(exc))
            return

        payload = build_payload(report, self._config.username)
        try:
            future = self._executor.submit(self._deliver, url, payload, str(report.meta.id))
        except RuntimeError as exc:
            # Executor already shut down.
            _log.warning("webhook_submit_failed", incident_id=str(report.meta.id), error=str(exc))
            return
        with self._lock:
            self._deliveries.add(future)
        future.add_done_callback(self._forget_delivery)

    def _claim_slot(self, now: datetime) -> bool:
        with self._lock:
            if self._last_sent_at is not None and now < self._last_sent_at + self._config.cooldown:
                return False
            self._last_sent_at = now
            return True

    def _deliver(self, url: str, payload: str, incident_id: str) -> bool:
        try:
            ok = self._transport.post(url, payload)
        except Exception as exc:
            _log.warning("webhook_delivery_failed", incident_id=incident_id, error=str(exc))
            ok = False
        notifications_total.labels(success=str(ok).lower()).inc()
        if ok:
            _log.info("webhook_delivered", incident_id=incident_id)
        return ok

    def _forget_delivery(self, future: Future[bool]) -> None:
        with self._lock:
            self._deliveries.discard(future)

    def close(self, timeout: float | None = None) -> None:
        """Wait up to *timeout* seconds for pending deliveries, then release resources.

        The transport is left open if a delivery is still running when the
        timeout expires.
        """
        with self._lock:
            pending = set(self._deliveries)
        if self._owns_executor:
            self._executor.shutdown(wait=False)
        _done, not_done = wait_futures(pending, timeout=timeout)
        if not_done:
            _log.warning("webhook_deliveries_abandoned", pending=len(not_done))
            return
        close = getattr(self._transport, "close", None)
        if callable(close):
            close()
