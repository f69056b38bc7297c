"""On-disk bundle naming: ``incident-<incidentId>.zip``."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from blackbox.incidents.ids import parse_incident_timestamp
from blackbox.models.incident import IncidentId

BUNDLE_PREFIX = "incident-"
BUNDLE_SUFFIX = ".zip"


def bundle_file_name(incident_id: IncidentId | str) -> str:
    return f"{BUNDLE_PREFIX}{incident_id}{BUNDLE_SUFFIX}"


def bundle_path(incident_dir: Path, incident_id: IncidentId | str) -> Path:
    return incident_dir / bundle_file_name(incident_id)


def is_bundle_name(file_name: str) -> bool:
    return file_name.endswith(BUNDLE_SUFFIX)


def incident_id_from_name(file_name: str) -> str | None:
    """Strip the bundle prefix and suffix; None if *file_name* is not a bundle."""
    if not is_bundle_name(file_name):
        return None
    base = file_name[: -len(BUNDLE_SUFFIX)]
    return base.removeprefix(BUNDLE_PREFIX) or None


def created_at_from_name(file_name: str) -> datetime | None:
    """Parse the creation instant embedded in a bundle file name."""
    incident_id = incident_id_from_name(file_name)
    if incident_id is None:
        return None
    return parse_incident_timestamp(incident_id)
