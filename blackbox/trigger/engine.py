"""Cooldown / debounce gate in front of every capture request.

The global cooldown is checked strictly before the per-(kind, scope)
debounce, and a rejected event never touches either timer. Each
evaluation runs under a single lock so two concurrent events cannot both
observe "not in cooldown" before one of them records its acceptance.
"""

from __future__ import annotations

import threading
from datetime import datetime

import structlog

from blackbox.clock import Clock, utc_now
from blackbox.models.incident import Severity
from blackbox.models.trigger import (
    REASON_ATTR,
    STALL_MS_ATTR,
    TriggerDecision,
    TriggerEvent,
    TriggerKind,
    TriggerPolicy,
    TriggerResult,
)

_log = structlog.get_logger(component="trigger.engine")


class TriggerEngine:
    """Applies cooldown and debounce policies and classifies severity."""

    def __init__(self, policy: TriggerPolicy, clock: Clock = utc_now) -> None:
        self._policy = policy
        self._clock = clock
        self._lock = threading.Lock()
        self._last_accepted_at: datetime | None = None
        self._last_accepted_by_key: dict[tuple[str, str], datetime] = {}

    @property
    def policy(self) -> TriggerPolicy:
        return self._policy

    def evaluate(self, event: TriggerEvent) -> TriggerResult:
        now = event.at if event.at is not None else self._clock()
        key = (event.kind_name, event.scope)

        with self._lock:
            if self._last_accepted_at is not None and now < self._last_accepted_at + self._policy.cooldown:
                _log.debug("trigger_rejected", decision="cooldown", kind=event.kind_name, scope=event.scope)
                return TriggerResult(TriggerDecision.COOLDOWN, Severity.INFO, "Rejected: cooldown active")

            last_for_key = self._last_accepted_by_key.get(key)
            if last_for_key is not None and now < last_for_key + self._policy.debounce:
                _log.debug("trigger_rejected", decision="debounce", kind=event.kind_name, scope=event.scope)
                return TriggerResult(TriggerDecision.DEBOUNCE, Severity.INFO, "Rejected: debounce active")

            accepted = self._classify(event)
            self._last_accepted_at = now
            self._last_accepted_by_key[key] = now
            return accepted

    def _classify(self, event: TriggerEvent) -> TriggerResult:
        if event.kind == TriggerKind.MANUAL:
            reason = event.attributes.get(REASON_ATTR, "").strip()
            headline = f"Manual capture: {reason}" if reason else "Manual capture"
            return TriggerResult(TriggerDecision.ACCEPT, Severity.INFO, headline)

        if event.kind == TriggerKind.HEARTBEAT_STALL:
            stall_ms = parse_stall_ms(event.attributes.get(STALL_MS_ATTR))
            return TriggerResult(
                TriggerDecision.ACCEPT,
                self.stall_severity(stall_ms),
                f"Heartbeat stalled {event.scope} ({stall_ms}ms)",
            )

        return TriggerResult(TriggerDecision.ACCEPT, Severity.INFO, "Capture triggered")

    def stall_severity(self, stall_ms: int) -> Severity:
        if stall_ms >= self._policy.stall_critical_ms:
            return Severity.CRITICAL
        if stall_ms >= self._policy.stall_degraded_ms:
            return Severity.DEGRADED
        return Severity.INFO


def parse_stall_ms(value: str | None) -> int:
    """Parse a stall duration attribute; missing or malformed values count as 0."""
    if value is None:
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0
