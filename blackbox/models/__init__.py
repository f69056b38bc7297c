"""Core data structures for Blackbox."""

from blackbox.models.config import BlackboxConfig, WebhookConfig
from blackbox.models.incident import (
    IncidentId,
    IncidentMetadata,
    IncidentReport,
    IncidentSummary,
    Severity,
)
from blackbox.models.retention import RetentionPolicy, RetentionStats
from blackbox.models.trigger import (
    TriggerDecision,
    TriggerEvent,
    TriggerKind,
    TriggerPolicy,
    TriggerResult,
)

__all__ = [
    "BlackboxConfig",
    "IncidentId",
    "IncidentMetadata",
    "IncidentReport",
    "IncidentSummary",
    "RetentionPolicy",
    "RetentionStats",
    "Severity",
    "TriggerDecision",
    "TriggerEvent",
    "TriggerKind",
    "TriggerPolicy",
    "TriggerResult",
    "WebhookConfig",
]
