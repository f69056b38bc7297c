"""Tests for the default recording and extras sources."""

from __future__ import annotations

import os
import threading
from pathlib import Path

import pytest
from helpers import MutableClock, make_report

from blackbox.capture.extras import ProcessExtrasProvider
from blackbox.env import os_info, python_info
from blackbox.models.trigger import TriggerEvent, TriggerKind
from blackbox.recorder.stacks import StackDumpRecorder

# ---------------------------------------------------------------------------
# StackDumpRecorder
# ---------------------------------------------------------------------------


class TestStackDumpRecorder:
    def test_writes_header_and_all_threads(self, tmp_path: Path, clock: MutableClock) -> None:
        release = threading.Event()
        worker = threading.Thread(target=release.wait, name="parked-worker", daemon=True)
        worker.start()
        try:
            target = StackDumpRecorder(clock).dump(tmp_path / "nested" / "rec.txt")
        finally:
            release.set()
            worker.join()

        text = target.read_text(encoding="utf-8")
        assert target == tmp_path / "nested" / "rec.txt"
        assert text.startswith("# blackbox thread dump\n")
        assert f"# pid={os.getpid()}\n" in text
        assert "# capturedAt=2026-01-11T01:02:03.456Z\n" in text
        assert "most recent call first" in text
        assert text.count("Thread 0x") >= 2

    def test_unwritable_target_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(OSError):
            StackDumpRecorder().dump(blocker / "rec.txt")


# ---------------------------------------------------------------------------
# ProcessExtrasProvider
# ---------------------------------------------------------------------------


class TestProcessExtrasProvider:
    def _event(self) -> TriggerEvent:
        return TriggerEvent(kind=TriggerKind.MANUAL, scope="server")

    def test_process_and_thread_snapshots(self) -> None:
        attachments = ProcessExtrasProvider().extras(make_report(), self._event())

        by_path = {a.path_in_zip: a.data.decode("utf-8") for a in attachments}
        assert set(by_path) == {"extras/process.txt", "extras/threads.txt"}
        assert f"pid={os.getpid()}\n" in by_path["extras/process.txt"]
        assert "uptimeMs=" in by_path["extras/process.txt"]
        assert f"{threading.current_thread().name} daemon=" in by_path["extras/threads.txt"]

    def test_failing_snapshot_is_left_out(self, monkeypatch: pytest.MonkeyPatch) -> None:
        provider = ProcessExtrasProvider()

        def _boom() -> str:
            raise RuntimeError("no threads for you")

        monkeypatch.setattr(ProcessExtrasProvider, "_threads_text", staticmethod(_boom))

        attachments = provider.extras(make_report(), self._event())

        assert [a.path_in_zip for a in attachments] == ["extras/process.txt"]


# ---------------------------------------------------------------------------
# Environment info
# ---------------------------------------------------------------------------


def test_env_info_is_key_value_lines() -> None:
    for text, prefix in ((python_info(), "python."), (os_info(), "os.")):
        lines = text.splitlines()
        assert lines
        assert all(line.startswith(prefix) and "=" in line for line in lines)
        assert text.endswith("\n")
