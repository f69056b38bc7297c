"""Capability seams consumed by the capture pipeline.

Each capability is a one-method ABC injected at construction, so the
pipeline can be exercised without a real recorder, webhook or host.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from blackbox.bundle.attachment import BundleAttachment
from blackbox.models.incident import IncidentReport
from blackbox.models.trigger import TriggerEvent


class RecordingDumper(ABC):
    """Dumps the current diagnostic recording to a file."""

    @abstractmethod
    def dump(self, target: Path) -> Path:
        """Write the recording to *target* and return the path actually written.

        Must create any missing parent directories. May raise.
        """


class IncidentNotifier(ABC):
    """Side-effecting hook invoked once per written bundle."""

    @abstractmethod
    def on_incident(self, report: IncidentReport, bundle_path: Path) -> None:
        """Announce a new incident. Implementations should not raise."""


class BundleExtrasProvider(ABC):
    """Supplies host-specific attachments for a bundle."""

    @abstractmethod
    def extras(self, report: IncidentReport, event: TriggerEvent) -> list[BundleAttachment]:
        """Return attachments for this incident. May raise."""


class NoopNotifier(IncidentNotifier):
    def on_incident(self, report: IncidentReport, bundle_path: Path) -> None:
        return None


class NoExtras(BundleExtrasProvider):
    def extras(self, report: IncidentReport, event: TriggerEvent) -> list[BundleAttachment]:
        return []
