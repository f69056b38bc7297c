"""Default extras provider: process and thread snapshots."""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable

import structlog

from blackbox.bundle.attachment import BundleAttachment
from blackbox.capture.protocols import BundleExtrasProvider
from blackbox.models.incident import IncidentReport
from blackbox.models.trigger import TriggerEvent

_log = structlog.get_logger(component="capture.extras")


class ProcessExtrasProvider(BundleExtrasProvider):
    """Adds ``extras/process.txt`` and ``extras/threads.txt``.

    Each attachment is built independently; one that fails to render is
    logged and left out.
    """

    def __init__(self, started_at: float | None = None) -> None:
        self._started_at = time.monotonic() if started_at is None else started_at

    def extras(self, report: IncidentReport, event: TriggerEvent) -> list[BundleAttachment]:
        attachments: list[BundleAttachment] = []
        self._add_text(attachments, "extras/process.txt", self._process_text)
        self._add_text(attachments, "extras/threads.txt", self._threads_text)
        return attachments

    @staticmethod
    def _add_text(attachments: list[BundleAttachment], path_in_zip: str, supplier: Callable[[], str]) -> None:
        try:
            text = supplier()
        except Exception as exc:
            _log.warning("bundle_attachment_failed", path=path_in_zip, error=str(exc))
            return
        if text and text.strip():
            attachments.append(BundleAttachment.text(path_in_zip, text))

    def _process_text(self) -> str:
        uptime_ms = int((time.monotonic() - self._started_at) * 1000)
        return (
            f"pid={os.getpid()}\n"
            f"threads={threading.active_count()}\n"
            f"uptimeMs={uptime_ms}\n"
        )

    @staticmethod
    def _threads_text() -> str:
        threads = sorted(threading.enumerate(), key=lambda t: t.name)
        return "".join(f"{t.name} daemon={str(t.daemon).lower()} alive={str(t.is_alive()).lower()}\n" for t in threads)
