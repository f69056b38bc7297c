"""Trigger events, decisions and the policy that gates them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from types import MappingProxyType

from blackbox.models.incident import Severity


class TriggerKind(StrEnum):
    """Source of a trigger event."""

    MANUAL = "MANUAL"
    HEARTBEAT_STALL = "HEARTBEAT_STALL"


class TriggerDecision(StrEnum):
    """Decision returned by the trigger engine."""

    ACCEPT = "ACCEPT"
    COOLDOWN = "COOLDOWN"
    DEBOUNCE = "DEBOUNCE"


STALL_MS_ATTR = "stallMs"
REASON_ATTR = "reason"


@dataclass(frozen=True)
class TriggerEvent:
    """Trigger signal emitted by detectors or manual sources.

    ``at`` may be None, in which case the trigger engine stamps the event
    with its own clock. A naive ``at`` is taken to be UTC. Attributes carry
    kind-specific data such as the stall duration in milliseconds and are
    stored as a read-only copy.
    """

    kind: TriggerKind | str
    scope: str
    at: datetime | None = None
    attributes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.scope or not self.scope.strip():
            raise ValueError("scope must be non-blank")
        if self.at is not None and self.at.tzinfo is None:
            object.__setattr__(self, "at", self.at.replace(tzinfo=UTC))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    @property
    def kind_name(self) -> str:
        return str(self.kind)


@dataclass(frozen=True)
class TriggerResult:
    """Outcome of a single trigger evaluation."""

    decision: TriggerDecision
    severity: Severity
    headline: str

    @property
    def accepted(self) -> bool:
        return self.decision is TriggerDecision.ACCEPT


@dataclass(frozen=True)
class TriggerPolicy:
    """Cooldown, debounce and heartbeat-stall thresholds."""

    cooldown: timedelta = timedelta(seconds=30)
    debounce: timedelta = timedelta(seconds=2)
    stall_degraded_ms: int = 2_000
    stall_critical_ms: int = 10_000

    def __post_init__(self) -> None:
        if self.cooldown < timedelta(0):
            raise ValueError("cooldown must be non-negative")
        if self.debounce < timedelta(0):
            raise ValueError("debounce must be non-negative")
        if self.stall_degraded_ms <= 0 or self.stall_critical_ms <= 0:
            raise ValueError("stall thresholds must be > 0")
        if self.stall_critical_ms < self.stall_degraded_ms:
            raise ValueError("stall_critical_ms must be >= stall_degraded_ms")
