"""Retention enforcement for the incident bundle directory."""

from blackbox.models.retention import RetentionPolicy, RetentionStats
from blackbox.retention.deleter import FileDeleter, UnlinkDeleter
from blackbox.retention.manager import RetentionManager

__all__ = [
    "FileDeleter",
    "RetentionManager",
    "RetentionPolicy",
    "RetentionStats",
    "UnlinkDeleter",
]
