"""Default recorder: a faulthandler dump of every live thread's stack."""

from __future__ import annotations

import faulthandler
import os
from pathlib import Path

import structlog

from blackbox.capture.protocols import RecordingDumper
from blackbox.clock import Clock, utc_now
from blackbox.serialization.incident_json import format_instant

_log = structlog.get_logger(component="recorder.stacks")


class StackDumpRecorder(RecordingDumper):
    """Writes a plain-text thread dump to the requested target.

    The file starts with a short header (pid, capture time) followed by
    faulthandler's traceback of all threads, most recent call first.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock

    def dump(self, target: Path) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8") as handle:
            handle.write(f"# blackbox thread dump\n# pid={os.getpid()}\n# capturedAt={format_instant(self._clock())}\n\n")
            handle.flush()
            faulthandler.dump_traceback(file=handle, all_threads=True)
        _log.debug("recording_dumped", path=str(target))
        return target
