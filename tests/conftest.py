"""Shared fixtures for the Blackbox test suite."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from datetime import timedelta
from pathlib import Path

import pytest
import structlog
from helpers import FakeDumper, MutableClock, RecordingNotifier

from blackbox.models.config import BlackboxConfig, SchedulerConfig
from blackbox.models.retention import RetentionPolicy
from blackbox.models.trigger import TriggerPolicy


@pytest.fixture(autouse=True)
def _default_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep structlog on its uncached defaults.

    ``setup_logging`` caches loggers bound to the stderr of the moment,
    which CliRunner closes after every invocation.
    """
    monkeypatch.setattr("blackbox.cli.main.setup_logging", lambda level="info": None)
    monkeypatch.setattr("blackbox.app.setup_logging", lambda level="info": None)
    # Log to the process stderr so records never mix into CliRunner output.
    structlog.configure(
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.__stderr__),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def dumper() -> FakeDumper:
    return FakeDumper()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def config(tmp_path: Path) -> BlackboxConfig:
    return BlackboxConfig(
        data_dir=tmp_path / "data",
        trigger=TriggerPolicy(
            cooldown=timedelta(seconds=30),
            debounce=timedelta(seconds=2),
            stall_degraded_ms=150,
            stall_critical_ms=5000,
        ),
        retention=RetentionPolicy(max_count=10),
        scheduler=SchedulerConfig(
            heartbeat_interval_ms=10,
            stall_check_interval_ms=20,
            shutdown_grace=timedelta(seconds=2),
        ),
    )
