"""Trigger gating and heartbeat stall detection."""

from blackbox.trigger.engine import TriggerEngine, parse_stall_ms
from blackbox.trigger.heartbeat import HeartbeatRegistry, HeartbeatStallDetector

__all__ = [
    "HeartbeatRegistry",
    "HeartbeatStallDetector",
    "TriggerEngine",
    "parse_stall_ms",
]
