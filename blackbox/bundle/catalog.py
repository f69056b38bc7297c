"""Listing of incident bundles on disk, newest first."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from blackbox.bundle.naming import bundle_path, created_at_from_name, incident_id_from_name, is_bundle_name

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class IncidentFile:
    """One bundle file. ``created_at`` is None when the name has no timestamp."""

    id: str
    path: Path
    created_at: datetime | None


def list_incidents(incident_dir: Path, limit: int | None = None) -> list[IncidentFile]:
    """Return bundles in *incident_dir* sorted newest first.

    Order is the reverse of retention's deletion order: the timestamp in the
    file name, or the file's mtime when the name has none, then the name.
    A missing directory yields an empty list.
    """
    if not incident_dir.is_dir():
        return []

    ranked: list[tuple[datetime, str, IncidentFile]] = []
    for path in incident_dir.iterdir():
        if not is_bundle_name(path.name) or not path.is_file():
            continue
        incident_id = incident_id_from_name(path.name)
        if incident_id is None:
            continue
        created_at = created_at_from_name(path.name)
        entry = IncidentFile(id=incident_id, path=path, created_at=created_at)
        ranked.append((created_at or _modified_at(path), path.name, entry))

    ranked.sort(key=lambda item: (item[0], item[1]), reverse=True)
    files = [entry for _, _, entry in ranked]
    if limit is not None and limit >= 0:
        files = files[:limit]
    return files


def _modified_at(path: Path) -> datetime:
    try:
        return datetime.fromtimestamp(path.lstat().st_mtime, tz=UTC)
    except OSError:
        return _EPOCH


def find_incident(incident_dir: Path, incident_id: str) -> IncidentFile | None:
    """Look up a bundle by incident id; None if no such file exists."""
    if not incident_id or "/" in incident_id or "\\" in incident_id:
        return None
    path = bundle_path(incident_dir, incident_id)
    if not path.is_file():
        return None
    return IncidentFile(id=incident_id, path=path, created_at=created_at_from_name(path.name))
