"""Retention policy and enforcement statistics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class RetentionPolicy:
    """Retention limits for stored incident bundles.

    A zero ``max_count`` or ``max_total_bytes`` and an absent ``max_age``
    disable the corresponding limit.
    """

    max_count: int = 0
    max_total_bytes: int = 0
    max_age: timedelta | None = None

    def __post_init__(self) -> None:
        if self.max_count < 0:
            raise ValueError("max_count must be >= 0")
        if self.max_total_bytes < 0:
            raise ValueError("max_total_bytes must be >= 0")
        if self.max_age is not None and self.max_age < timedelta(0):
            raise ValueError("max_age must be non-negative")


@dataclass(frozen=True)
class RetentionStats:
    """Result of one enforcement pass. Informational only, never persisted."""

    scanned: int = 0
    deleted: int = 0
    bytes_deleted: int = 0
    delete_failures: int = 0
    final_bytes: int = 0
    final_count: int = 0
