"""Tests for retention enforcement over the bundle directory."""

from __future__ import annotations

import os
import tempfile
from datetime import timedelta
from pathlib import Path

import pytest
from helpers import T0, FlakyDeleter, MutableClock
from hypothesis import given, settings
from hypothesis import strategies as st

from blackbox.bundle.naming import bundle_file_name
from blackbox.incidents.ids import format_incident_timestamp
from blackbox.models.retention import RetentionPolicy, RetentionStats
from blackbox.retention.manager import RetentionManager


def _write_bundles(directory: Path, count: int, size: int = 100, step: timedelta = timedelta(minutes=1)) -> list[Path]:
    """Create *count* bundles with strictly increasing embedded timestamps, oldest first."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for i in range(count):
        incident_id = f"{format_incident_timestamp(T0 + step * i)}-{i + 1:06d}"
        path = directory / bundle_file_name(incident_id)
        path.write_bytes(b"x" * size)
        paths.append(path)
    return paths


def _remaining(directory: Path) -> list[str]:
    return sorted(p.name for p in directory.glob("*.zip"))


# ---------------------------------------------------------------------------
# Count limit
# ---------------------------------------------------------------------------


class TestMaxCount:
    def test_keeps_two_newest_of_five(self, tmp_path: Path) -> None:
        paths = _write_bundles(tmp_path, 5)

        stats = RetentionManager().enforce(tmp_path, RetentionPolicy(max_count=2))

        assert stats.scanned == 5
        assert stats.deleted == 3
        assert stats.bytes_deleted == 300
        assert stats.delete_failures == 0
        assert stats.final_count == 2
        assert stats.final_bytes == 200
        assert _remaining(tmp_path) == sorted(p.name for p in paths[-2:])

    def test_under_limit_deletes_nothing(self, tmp_path: Path) -> None:
        _write_bundles(tmp_path, 3)
        stats = RetentionManager().enforce(tmp_path, RetentionPolicy(max_count=5))
        assert stats.deleted == 0
        assert stats.final_count == 3

    def test_partial_failure_moves_on_to_next_oldest(self, tmp_path: Path) -> None:
        oldest, middle, newest = _write_bundles(tmp_path, 3)
        deleter = FlakyDeleter(fail_names={oldest.name})

        stats = RetentionManager(deleter).enforce(tmp_path, RetentionPolicy(max_count=1))

        assert deleter.attempts == [oldest.name, middle.name]
        assert stats.deleted == 1
        assert stats.delete_failures == 1
        assert stats.final_count == 2
        assert newest.exists()
        assert oldest.exists()
        assert not middle.exists()

    def test_newest_never_deleted_even_when_every_other_delete_fails(self, tmp_path: Path) -> None:
        paths = _write_bundles(tmp_path, 4)
        deleter = FlakyDeleter(fail_names={p.name for p in paths[:-1]})

        stats = RetentionManager(deleter).enforce(tmp_path, RetentionPolicy(max_count=1))

        assert paths[-1].name not in deleter.attempts
        assert stats.delete_failures == 3
        assert stats.final_count == 4

    def test_file_name_breaks_timestamp_ties(self, tmp_path: Path) -> None:
        a = tmp_path / "a.zip"
        b = tmp_path / "b.zip"
        for path in (a, b):
            path.write_bytes(b"x")
            os.utime(path, (1_700_000_000, 1_700_000_000))

        RetentionManager().enforce(tmp_path, RetentionPolicy(max_count=1))

        assert not a.exists()
        assert b.exists()

    def test_name_timestamp_wins_over_mtime(self, tmp_path: Path) -> None:
        older, newer = _write_bundles(tmp_path, 2)
        # Make the older bundle look recently modified.
        os.utime(newer, (1_000_000_000, 1_000_000_000))

        RetentionManager().enforce(tmp_path, RetentionPolicy(max_count=1))

        assert not older.exists()
        assert newer.exists()

    def test_non_bundle_files_are_ignored(self, tmp_path: Path) -> None:
        _write_bundles(tmp_path, 2)
        note = tmp_path / "notes.txt"
        note.write_text("keep me")

        stats = RetentionManager().enforce(tmp_path, RetentionPolicy(max_count=1))

        assert note.exists()
        assert stats.scanned == 2
        assert stats.final_count == 1

    @settings(max_examples=40, deadline=None)
    @given(n=st.integers(min_value=1, max_value=8), max_count=st.integers(min_value=0, max_value=6))
    def test_count_bound_and_newest_kept(self, n: int, max_count: int) -> None:
        with tempfile.TemporaryDirectory() as raw:
            directory = Path(raw)
            paths = _write_bundles(directory, n)

            stats = RetentionManager().enforce(directory, RetentionPolicy(max_count=max_count))

            remaining = list(directory.glob("*.zip"))
            if max_count == 0:
                assert len(remaining) == n
            else:
                assert len(remaining) <= max(max_count, 1)
            assert paths[-1].exists()
            assert stats.final_count == len(remaining)


# ---------------------------------------------------------------------------
# Age and size limits
# ---------------------------------------------------------------------------


class TestMaxAge:
    def test_deletes_everything_older_than_cutoff(self, tmp_path: Path) -> None:
        paths = _write_bundles(tmp_path, 5)
        clock = MutableClock(T0 + timedelta(minutes=7))

        stats = RetentionManager(clock=clock).enforce(tmp_path, RetentionPolicy(max_age=timedelta(minutes=5)))

        # Cutoff is T0+2m: bundles at T0 and T0+1m are older.
        assert stats.deleted == 2
        assert _remaining(tmp_path) == sorted(p.name for p in paths[2:])

    def test_newest_survives_even_if_expired(self, tmp_path: Path) -> None:
        paths = _write_bundles(tmp_path, 3)
        clock = MutableClock(T0 + timedelta(days=30))

        stats = RetentionManager(clock=clock).enforce(tmp_path, RetentionPolicy(max_age=timedelta(days=7)))

        assert stats.deleted == 2
        assert _remaining(tmp_path) == [paths[-1].name]


class TestMaxTotalBytes:
    def test_deletes_oldest_until_under_limit(self, tmp_path: Path) -> None:
        paths = _write_bundles(tmp_path, 5, size=100)

        stats = RetentionManager().enforce(tmp_path, RetentionPolicy(max_total_bytes=250))

        assert stats.deleted == 3
        assert stats.final_bytes == 200
        assert _remaining(tmp_path) == sorted(p.name for p in paths[3:])

    def test_stops_at_newest_when_it_alone_exceeds_limit(self, tmp_path: Path) -> None:
        paths = _write_bundles(tmp_path, 3, size=1000)

        stats = RetentionManager().enforce(tmp_path, RetentionPolicy(max_total_bytes=10))

        assert stats.deleted == 2
        assert _remaining(tmp_path) == [paths[-1].name]


class TestComposition:
    def test_limits_apply_in_order_on_remaining_set(self, tmp_path: Path) -> None:
        paths = _write_bundles(tmp_path, 6, size=100)
        clock = MutableClock(T0 + timedelta(minutes=6))
        policy = RetentionPolicy(max_count=3, max_total_bytes=150, max_age=timedelta(minutes=5, seconds=30))

        stats = RetentionManager(clock=clock).enforce(tmp_path, policy)

        # age drops T0; count drops T0+1m, T0+2m; bytes drops T0+3m, T0+4m.
        assert stats.deleted == 5
        assert _remaining(tmp_path) == [paths[-1].name]

    def test_unlimited_policy_deletes_nothing(self, tmp_path: Path) -> None:
        _write_bundles(tmp_path, 4, size=10)
        stats = RetentionManager().enforce(tmp_path, RetentionPolicy())
        assert stats == RetentionStats(scanned=4, final_bytes=40, final_count=4)


class TestEmptyInputs:
    def test_missing_directory(self, tmp_path: Path) -> None:
        assert RetentionManager().enforce(tmp_path / "nope", RetentionPolicy(max_count=1)) == RetentionStats()

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert RetentionManager().enforce(tmp_path, RetentionPolicy(max_count=1)) == RetentionStats()


class TestRetentionPolicy:
    def test_negative_values_rejected(self) -> None:
        with pytest.raises(ValueError):
            RetentionPolicy(max_count=-1)
        with pytest.raises(ValueError):
            RetentionPolicy(max_total_bytes=-1)
        with pytest.raises(ValueError):
            RetentionPolicy(max_age=timedelta(seconds=-1))
