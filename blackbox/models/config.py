"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from blackbox.models.retention import RetentionPolicy
from blackbox.models.trigger import TriggerPolicy


@dataclass(frozen=True)
class WebhookConfig:
    """Outbound incident webhook configuration.

    An empty ``url`` disables webhook notifications entirely.
    """

    url: str = ""
    cooldown: timedelta = timedelta(minutes=1)
    request_timeout: timedelta = timedelta(seconds=10)
    username: str = "Blackbox"

    def __post_init__(self) -> None:
        if self.cooldown < timedelta(0):
            raise ValueError("cooldown must be non-negative")
        if self.request_timeout < timedelta(0):
            raise ValueError("request_timeout must be non-negative")

    @property
    def enabled(self) -> bool:
        return bool(self.url.strip())


@dataclass
class SchedulerConfig:
    """Periodic heartbeat and stall-check cadence."""

    heartbeat_interval_ms: int = 50
    stall_check_interval_ms: int = 250
    shutdown_grace: timedelta = timedelta(seconds=2)


@dataclass
class APIConfig:
    """REST API configuration."""

    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8787


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class BlackboxConfig:
    """Top-level Blackbox configuration."""

    data_dir: Path = field(default_factory=lambda: Path("blackbox-data"))
    trigger: TriggerPolicy = field(default_factory=TriggerPolicy)
    retention: RetentionPolicy = field(
        default_factory=lambda: RetentionPolicy(
            max_count=25,
            max_total_bytes=1024 * 1024 * 1024,
            max_age=timedelta(days=7),
        )
    )
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def incident_dir(self) -> Path:
        return self.data_dir / "incidents"

    @property
    def temp_dir(self) -> Path:
        return self.data_dir / "temp"
