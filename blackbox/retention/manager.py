"""On-disk retention enforcement for incident bundles.

Bundles are ordered by ``(created_at, file name)``; ``created_at`` comes
from the timestamp embedded in the file name and falls back to the file's
modification time. Limits are applied in a fixed order within one pass:

    1. max_age         -- delete every non-newest bundle older than the cutoff
    2. max_count       -- delete oldest until the count fits
    3. max_total_bytes -- delete oldest until the byte total fits

Each step works on whatever the previous step left behind. The newest
bundle is never a deletion candidate, and a failed deletion only removes
that file from further consideration in the current pass. Final totals are
taken from a fresh directory scan rather than from bookkeeping.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import structlog

from blackbox.bundle.naming import created_at_from_name, is_bundle_name
from blackbox.clock import Clock, utc_now
from blackbox.models.retention import RetentionPolicy, RetentionStats
from blackbox.observability.metrics import (
    retention_delete_failures_total,
    retention_deleted_total,
)
from blackbox.retention.deleter import FileDeleter, UnlinkDeleter

_log = structlog.get_logger(component="retention.manager")


@dataclass(frozen=True)
class _BundleFile:
    path: Path
    created_at: datetime
    size: int


class _Pass:
    """Mutable state for one enforcement pass."""

    def __init__(self, files: list[_BundleFile], deleter: FileDeleter) -> None:
        self.remaining = files
        self.newest = files[-1]
        self.failed: set[Path] = set()
        self.deleter = deleter
        self.deleted = 0
        self.bytes_deleted = 0
        self.delete_failures = 0

    @property
    def count(self) -> int:
        return len(self.remaining)

    @property
    def total_bytes(self) -> int:
        return sum(f.size for f in self.remaining)

    def oldest_candidate(self) -> _BundleFile | None:
        for bundle in self.remaining:
            if bundle is self.newest or bundle.path in self.failed:
                continue
            return bundle
        return None

    def try_delete(self, bundle: _BundleFile) -> bool:
        if bundle is self.newest or bundle.path in self.failed:
            return False
        try:
            self.deleter.delete(bundle.path)
        except Exception as exc:
            self.failed.add(bundle.path)
            self.delete_failures += 1
            _log.warning("retention_delete_failed", path=str(bundle.path), error=str(exc))
            return False
        self.remaining.remove(bundle)
        self.deleted += 1
        self.bytes_deleted += bundle.size
        _log.debug("retention_deleted", path=str(bundle.path), size=bundle.size)
        return True


class RetentionManager:
    """Deletes the minimum number of bundles needed to satisfy a RetentionPolicy."""

    def __init__(self, deleter: FileDeleter | None = None, clock: Clock = utc_now) -> None:
        self._deleter = deleter or UnlinkDeleter()
        self._clock = clock

    def enforce(self, incident_dir: Path, policy: RetentionPolicy) -> RetentionStats:
        """Apply *policy* to the bundles in *incident_dir*.

        Never raises for a missing or empty directory; returns all-zero stats.
        """
        if not incident_dir.is_dir():
            return RetentionStats()

        try:
            candidates = _list_bundles(incident_dir)
        except OSError as exc:
            _log.warning("retention_list_failed", incident_dir=str(incident_dir), error=str(exc))
            return RetentionStats()

        files: list[_BundleFile] = []
        for path in candidates:
            try:
                stat = path.lstat()
            except OSError as exc:
                _log.warning("retention_stat_failed", path=str(path), error=str(exc))
                continue
            created_at = created_at_from_name(path.name) or datetime.fromtimestamp(stat.st_mtime, tz=UTC)
            files.append(_BundleFile(path=path, created_at=created_at, size=stat.st_size))
        files.sort(key=lambda f: (f.created_at, f.path.name))

        if not files:
            final_bytes, final_count = _rescan(incident_dir)
            return RetentionStats(scanned=len(candidates), final_bytes=final_bytes, final_count=final_count)

        run = _Pass(files, self._deleter)
        self._apply_max_age(run, policy)
        if policy.max_count > 0:
            self._apply_limit(run, lambda: run.count > policy.max_count, "max_count")
        if policy.max_total_bytes > 0:
            self._apply_limit(run, lambda: run.total_bytes > policy.max_total_bytes, "max_total_bytes")

        if run.deleted:
            retention_deleted_total.inc(run.deleted)
        if run.delete_failures:
            retention_delete_failures_total.inc(run.delete_failures)

        final_bytes, final_count = _rescan(incident_dir)
        stats = RetentionStats(
            scanned=len(candidates),
            deleted=run.deleted,
            bytes_deleted=run.bytes_deleted,
            delete_failures=run.delete_failures,
            final_bytes=final_bytes,
            final_count=final_count,
        )
        if stats.deleted or stats.delete_failures:
            _log.info(
                "retention_enforced",
                scanned=stats.scanned,
                deleted=stats.deleted,
                bytes_deleted=stats.bytes_deleted,
                delete_failures=stats.delete_failures,
                final_count=stats.final_count,
                final_bytes=stats.final_bytes,
            )
        return stats

    def _apply_max_age(self, run: _Pass, policy: RetentionPolicy) -> None:
        if policy.max_age is None:
            return
        cutoff = self._clock() - policy.max_age
        for bundle in list(run.remaining):
            if bundle is run.newest:
                continue
            if bundle.created_at < cutoff:
                run.try_delete(bundle)
        if run.count == 1 and run.newest.created_at < cutoff:
            _log.warning("retention_max_age_exceeded_newest_kept", path=str(run.newest.path))

    @staticmethod
    def _apply_limit(run: _Pass, over_limit: Callable[[], bool], limit_name: str) -> None:
        while over_limit():
            candidate = run.oldest_candidate()
            if candidate is None:
                _log.warning("retention_limit_unsatisfiable", limit=limit_name)
                return
            run.try_delete(candidate)
            if run.count <= 1:
                # Only the newest bundle is left.
                if over_limit():
                    _log.warning("retention_stopped_at_newest", limit=limit_name)
                return


def _list_bundles(incident_dir: Path) -> list[Path]:
    return [
        path
        for path in incident_dir.iterdir()
        if is_bundle_name(path.name) and path.is_file() and not path.is_symlink()
    ]


def _rescan(incident_dir: Path) -> tuple[int, int]:
    """Return ``(total_bytes, count)`` of the bundles currently on disk."""
    try:
        paths = _list_bundles(incident_dir)
    except OSError:
        return 0, 0
    total = 0
    for path in paths:
        try:
            total += path.lstat().st_size
        except OSError:
            continue
    return total, len(paths)
