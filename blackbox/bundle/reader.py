"""Reading incident reports back out of bundles."""

from __future__ import annotations

import zipfile
from pathlib import Path

from blackbox.bundle.builder import INCIDENT_JSON
from blackbox.models.incident import IncidentReport
from blackbox.serialization.incident_json import parse_incident_json


class BundleReadError(Exception):
    """Raised when a bundle is missing, corrupt or lacks a valid incident.json."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot read bundle {path}: {reason}")
        self.path = path
        self.reason = reason


def read_bundle_report(path: Path) -> IncidentReport:
    """Parse the ``incident.json`` entry of the bundle at *path*."""
    try:
        with zipfile.ZipFile(path) as archive:
            raw = archive.read(INCIDENT_JSON)
    except FileNotFoundError as exc:
        raise BundleReadError(path, "file not found") from exc
    except KeyError as exc:
        raise BundleReadError(path, f"missing {INCIDENT_JSON}") from exc
    except (OSError, zipfile.BadZipFile) as exc:
        raise BundleReadError(path, str(exc)) from exc

    try:
        return parse_incident_json(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise BundleReadError(path, str(exc)) from exc


def read_headline(path: Path) -> str | None:
    """Return the report headline, or None if the bundle cannot be read."""
    try:
        return read_bundle_report(path).meta.headline
    except BundleReadError:
        return None
