"""Prometheus metrics exported by Blackbox.

All collectors live on the default registry and are exposed by the REST
API under ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter

triggers_total = Counter(
    "blackbox_triggers_total",
    "Trigger evaluations by decision",
    ["decision"],
)

captures_total = Counter(
    "blackbox_captures_total",
    "Capture attempts after an accepted trigger, by outcome",
    ["outcome"],
)

retention_deleted_total = Counter(
    "blackbox_retention_deleted_total",
    "Incident bundles deleted by retention enforcement",
)

retention_delete_failures_total = Counter(
    "blackbox_retention_delete_failures_total",
    "Incident bundle deletions that failed during retention enforcement",
)

notifications_total = Counter(
    "blackbox_notifications_total",
    "Webhook notification attempts by result",
    ["success"],
)

heartbeat_stalls_total = Counter(
    "blackbox_heartbeat_stalls_total",
    "Heartbeat stall episodes detected",
)
