"""Heartbeat registry and stall detector.

Liveness producers call :meth:`HeartbeatRegistry.beat` for their scope;
a single periodic reader calls :meth:`HeartbeatStallDetector.check`,
which emits one ``HEARTBEAT_STALL`` event on the rising edge of each stall
episode and nothing on the falling edge.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from blackbox.clock import Clock, utc_now
from blackbox.models.trigger import STALL_MS_ATTR, TriggerEvent, TriggerKind

_log = structlog.get_logger(component="trigger.heartbeat")

_ONE_MS = timedelta(milliseconds=1)


class HeartbeatRegistry:
    """Stores the last heartbeat timestamp per scope. Safe for concurrent writers."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._beats: dict[str, datetime] = {}

    def beat(self, scope: str) -> None:
        if not scope or not scope.strip():
            raise ValueError("scope must be non-blank")
        now = self._clock()
        with self._lock:
            self._beats[scope] = now

    def last_beat(self, scope: str) -> datetime | None:
        with self._lock:
            return self._beats.get(scope)

    def scopes(self) -> list[str]:
        with self._lock:
            return sorted(self._beats)

    def forget(self, scope: str) -> None:
        """Stop tracking *scope*, e.g. when its monitored unit shuts down."""
        with self._lock:
            self._beats.pop(scope, None)


@dataclass
class _ScopeState:
    last_seen_beat: datetime
    stalled: bool = False


class HeartbeatStallDetector:
    """Turns stale heartbeats into trigger events, once per stall episode."""

    def __init__(self, registry: HeartbeatRegistry, degraded_ms: int, clock: Clock = utc_now) -> None:
        if degraded_ms <= 0:
            raise ValueError("degraded_ms must be > 0")
        self._registry = registry
        self._degraded_ms = degraded_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._states: dict[str, _ScopeState] = {}

    def check(self) -> list[TriggerEvent]:
        now = self._clock()
        events: list[TriggerEvent] = []
        with self._lock:
            for scope in self._registry.scopes():
                last = self._registry.last_beat(scope)
                if last is None:
                    continue

                state = self._states.get(scope)
                if state is None or last > state.last_seen_beat:
                    # A fresh beat always clears the stall flag.
                    state = _ScopeState(last_seen_beat=last)
                    self._states[scope] = state

                stall_ms = (now - last) // _ONE_MS
                stalled = stall_ms >= self._degraded_ms
                if stalled and not state.stalled:
                    state.stalled = True
                    _log.warning("heartbeat_stall_detected", scope=scope, stall_ms=stall_ms)
                    events.append(
                        TriggerEvent(
                            kind=TriggerKind.HEARTBEAT_STALL,
                            scope=scope,
                            at=now,
                            attributes={STALL_MS_ATTR: str(stall_ms)},
                        )
                    )
                elif not stalled and state.stalled:
                    state.stalled = False
                    _log.info("heartbeat_recovered", scope=scope)

            for scope in set(self._states) - set(self._registry.scopes()):
                del self._states[scope]
        return events

    def stalled_scopes(self) -> list[str]:
        with self._lock:
            return sorted(scope for scope, state in self._states.items() if state.stalled)
