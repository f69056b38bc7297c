"""Incident bundle assembly.

A bundle is a zip archive with a fixed entry order::

    incident.json
    report.html
    recording<suffix>
    env/python.txt
    env/os.txt
    <attachments, ascending by path>

Every entry carries the same fixed timestamp and permissions so that two
bundles built from equal inputs are byte-identical. The archive is written
to a sibling temporary file and renamed into place, so readers never see a
partially written bundle.
"""

from __future__ import annotations

import os
import tempfile
import zipfile
from collections.abc import Iterable
from pathlib import Path

import structlog

from blackbox.bundle.attachment import BundleAttachment
from blackbox.env import os_info, python_info
from blackbox.models.incident import IncidentReport
from blackbox.report.html import render_report_html
from blackbox.serialization.incident_json import render_incident_json

_log = structlog.get_logger(component="bundle.builder")

INCIDENT_JSON = "incident.json"
REPORT_HTML = "report.html"
ENV_PYTHON = "env/python.txt"
ENV_OS = "env/os.txt"

# Earliest timestamp the zip format can represent.
_FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o644 << 16


def recording_entry_name(recording: Path) -> str:
    return f"recording{recording.suffix}"


class BundleBuilder:
    """Writes one incident bundle per call to :meth:`build`."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self._compression = compression

    def build(
        self,
        report: IncidentReport,
        recording: Path,
        output_zip: Path,
        extras: Iterable[BundleAttachment] = (),
    ) -> Path:
        """Assemble *report*, *recording* and *extras* into *output_zip*.

        Attachments whose path collides with a reserved entry or with an
        earlier attachment are skipped with a warning.

        Raises:
            OSError: if the recording cannot be read or the archive cannot
                be written. No partial archive is left behind.
        """
        recording_name = recording_entry_name(recording)
        recording_bytes = recording.read_bytes()

        entries: list[tuple[str, bytes]] = [
            (INCIDENT_JSON, render_incident_json(report).encode("utf-8")),
            (REPORT_HTML, render_report_html(report, recording_name).encode("utf-8", errors="replace")),
            (recording_name, recording_bytes),
            (ENV_PYTHON, python_info().encode("utf-8")),
            (ENV_OS, os_info().encode("utf-8")),
        ]
        seen = {name for name, _ in entries}
        for attachment in sorted(extras, key=lambda a: a.path_in_zip):
            if attachment.path_in_zip in seen:
                _log.warning(
                    "bundle_attachment_skipped",
                    path=attachment.path_in_zip,
                    reason="duplicate entry",
                )
                continue
            seen.add(attachment.path_in_zip)
            entries.append((attachment.path_in_zip, attachment.data))

        output_zip.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{output_zip.name}.", suffix=".tmp", dir=output_zip.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle, zipfile.ZipFile(handle, "w") as archive:
                for name, data in entries:
                    archive.writestr(self._entry(name), data)
            os.replace(tmp_path, output_zip)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        _log.debug("bundle_written", path=str(output_zip), entries=len(entries))
        return output_zip

    def _entry(self, name: str) -> zipfile.ZipInfo:
        info = zipfile.ZipInfo(filename=name, date_time=_FIXED_DATE_TIME)
        info.compress_type = self._compression
        info.external_attr = _FILE_MODE
        info.create_system = 3
        return info
