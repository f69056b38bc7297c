"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re
from datetime import timedelta
from pathlib import Path

from blackbox.models.config import (
    APIConfig,
    BlackboxConfig,
    LogConfig,
    SchedulerConfig,
    WebhookConfig,
)
from blackbox.models.retention import RetentionPolicy
from blackbox.models.trigger import TriggerPolicy

_DURATION_RE = re.compile(r"^([0-9]+)(ms|s|m|h|d)$")
_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"BLACKBOX_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def parse_duration(value: str) -> timedelta:
    """Parse ``500ms``, ``30s``, ``2m``, ``1h`` or ``7d`` into a timedelta."""
    match = _DURATION_RE.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid duration format: {value}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit]


def _env_duration(key: str, default: str) -> timedelta:
    return parse_duration(_env(key, default))


def _env_optional_duration(key: str, default: str) -> timedelta | None:
    raw = _env(key, default).strip()
    if raw == "" or raw.lower() == "none":
        return None
    return parse_duration(raw)


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> BlackboxConfig:
    """Load configuration from BLACKBOX_* environment variables.

    Raises:
        ValueError: if a value is malformed or violates a policy invariant.
    """
    return BlackboxConfig(
        data_dir=Path(_env("DATA_DIR", "blackbox-data")),
        trigger=TriggerPolicy(
            cooldown=_env_duration("TRIGGER_COOLDOWN", "30s"),
            debounce=_env_duration("TRIGGER_DEBOUNCE", "2s"),
            stall_degraded_ms=_env_int("STALL_DEGRADED_MS", 2_000, min_val=1),
            stall_critical_ms=_env_int("STALL_CRITICAL_MS", 10_000, min_val=1),
        ),
        retention=RetentionPolicy(
            max_count=_env_int("RETENTION_MAX_COUNT", 25, min_val=0),
            max_total_bytes=_env_int("RETENTION_MAX_TOTAL_BYTES", 1024 * 1024 * 1024, min_val=0),
            max_age=_env_optional_duration("RETENTION_MAX_AGE", "7d"),
        ),
        webhook=WebhookConfig(
            url=_env("WEBHOOK_URL", ""),
            cooldown=_env_duration("WEBHOOK_COOLDOWN", "1m"),
            request_timeout=_env_duration("WEBHOOK_TIMEOUT", "10s"),
            username=_env("WEBHOOK_USERNAME", "Blackbox"),
        ),
        scheduler=SchedulerConfig(
            heartbeat_interval_ms=_env_int("HEARTBEAT_INTERVAL_MS", 50, min_val=10, max_val=10_000),
            stall_check_interval_ms=_env_int("STALL_CHECK_INTERVAL_MS", 250, min_val=10, max_val=60_000),
            shutdown_grace=_env_duration("SHUTDOWN_GRACE", "2s"),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", False),
            host=_env("API_HOST", "127.0.0.1"),
            port=_env_int("API_PORT", 8787, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
