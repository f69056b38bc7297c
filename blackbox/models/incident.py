"""Incident value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class Severity(StrEnum):
    """High-level incident severity classification."""

    INFO = "INFO"
    DEGRADED = "DEGRADED"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True, order=True)
class IncidentId:
    """Opaque, lexicographically sortable incident identifier."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("IncidentId value must be non-blank")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class IncidentMetadata:
    """Identifies what happened and when.

    Created once by the capture pipeline when a trigger is accepted.
    ``scope`` is None when the incident is not tied to a monitored unit.
    """

    id: IncidentId
    created_at: datetime
    severity: Severity
    trigger: str
    scope: str | None
    headline: str


@dataclass(frozen=True)
class IncidentSummary:
    """Human-readable summary content. List order is display order."""

    likely_cause: str
    what_happened: tuple[str, ...] = field(default_factory=tuple)
    next_steps: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any sequence but store an immutable copy.
        object.__setattr__(self, "what_happened", tuple(self.what_happened))
        object.__setattr__(self, "next_steps", tuple(self.next_steps))


@dataclass(frozen=True)
class IncidentReport:
    """Full payload serialised into an incident bundle."""

    meta: IncidentMetadata
    summary: IncidentSummary
