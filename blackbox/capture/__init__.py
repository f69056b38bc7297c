"""Capture orchestration and its capability seams."""

from blackbox.capture.extras import ProcessExtrasProvider
from blackbox.capture.pipeline import CapturePipeline, CapturePolicy, build_report
from blackbox.capture.protocols import (
    BundleExtrasProvider,
    IncidentNotifier,
    NoExtras,
    NoopNotifier,
    RecordingDumper,
)

__all__ = [
    "BundleExtrasProvider",
    "CapturePipeline",
    "CapturePolicy",
    "IncidentNotifier",
    "NoExtras",
    "NoopNotifier",
    "ProcessExtrasProvider",
    "RecordingDumper",
    "build_report",
]
