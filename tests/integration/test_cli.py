"""Integration tests for the click CLI."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from blackbox.cli import cli
from blackbox.models.config import BlackboxConfig
from blackbox.runtime import CAPTURE_SKIPPED_MESSAGE

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("BLACKBOX_"):
            monkeypatch.delenv(key)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


def _run(data_dir: Path, *args: str) -> Result:
    return CliRunner().invoke(cli, ["--data-dir", str(data_dir), *args])


def _dump(data_dir: Path, *args: str) -> str:
    result = _run(data_dir, "dump", *args)
    assert result.exit_code == 0, result.output
    first_line = result.output.splitlines()[0]
    assert first_line.startswith("Captured incident ")
    return first_line.removeprefix("Captured incident ")


# ---------------------------------------------------------------------------
# dump
# ---------------------------------------------------------------------------


class TestDump:
    def test_dump_writes_bundle(self, data_dir: Path) -> None:
        result = _run(data_dir, "dump", "--reason", "cli check")

        assert result.exit_code == 0, result.output
        assert "Bundle: " in result.output
        bundles = list((data_dir / "incidents").glob("incident-*.zip"))
        assert len(bundles) == 1
        assert not any((data_dir / "temp").iterdir())

    def test_skipped_dump_exits_nonzero(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            "blackbox.cli.main.BlackboxRuntime.capture_manual",
            lambda self, reason=None, scope="server": None,
        )

        result = _run(data_dir, "dump")

        assert result.exit_code == 1
        assert CAPTURE_SKIPPED_MESSAGE in result.output


# ---------------------------------------------------------------------------
# list / show
# ---------------------------------------------------------------------------


class TestInspection:
    def test_list_empty(self, data_dir: Path) -> None:
        result = _run(data_dir, "list")
        assert result.exit_code == 0
        assert "No incidents found." in result.output

    def test_list_and_show(self, data_dir: Path) -> None:
        incident_id = _dump(data_dir, "--reason", "inspect me", "--scope", "world-3")

        listed = _run(data_dir, "list", "--limit", "5")
        assert listed.exit_code == 0
        assert "Recent incidents:" in listed.output
        assert f"{incident_id} - Manual capture: inspect me" in listed.output

        shown = _run(data_dir, "show", incident_id)
        assert shown.exit_code == 0, shown.output
        assert f"Incident {incident_id}" in shown.output
        assert "Severity: INFO  Trigger: MANUAL  Scope: world-3" in shown.output
        assert "Likely cause: Unknown" in shown.output
        assert "  - Operator reason: inspect me" in shown.output

    def test_show_unknown_incident(self, data_dir: Path) -> None:
        result = _run(data_dir, "show", "20990101-000000.000Z-000001")
        assert result.exit_code == 1
        assert "No incident bundle with id" in result.output


# ---------------------------------------------------------------------------
# status / prune
# ---------------------------------------------------------------------------


class TestMaintenance:
    def test_status(self, data_dir: Path) -> None:
        incident_id = _dump(data_dir)

        result = _run(data_dir, "status")

        assert result.exit_code == 0
        assert "Blackbox status" in result.output
        assert f"Incidents: {data_dir / 'incidents'} (1)" in result.output
        assert f"Last incident: {incident_id}" in result.output
        assert "Webhook: disabled" in result.output

    def test_prune_enforces_retention(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        incidents = data_dir / "incidents"
        incidents.mkdir(parents=True)
        for i in range(4):
            (incidents / f"incident-2026010{i + 1}-000000.000Z-00000{i + 1}.zip").write_bytes(b"x")
        monkeypatch.setenv("BLACKBOX_RETENTION_MAX_COUNT", "2")
        monkeypatch.setenv("BLACKBOX_RETENTION_MAX_AGE", "none")

        result = _run(data_dir, "prune")

        assert result.exit_code == 0, result.output
        assert "Scanned 4, deleted 2" in result.output
        assert "Remaining: 2 bundles" in result.output
        assert sorted(p.name for p in incidents.iterdir()) == [
            "incident-20260103-000000.000Z-000003.zip",
            "incident-20260104-000000.000Z-000004.zip",
        ]

    def test_invalid_config_is_reported(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BLACKBOX_TRIGGER_COOLDOWN", "soon")
        result = _run(data_dir, "status")
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


class TestServe:
    def test_serve_runs_daemon_with_overrides(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[BlackboxConfig] = []

        async def _fake_main(config: BlackboxConfig | None = None) -> None:
            assert config is not None
            seen.append(config)

        monkeypatch.setattr("blackbox.app.main", _fake_main)

        result = _run(data_dir, "serve", "--api")

        assert result.exit_code == 0, result.output
        assert len(seen) == 1
        assert seen[0].data_dir == data_dir
        assert seen[0].api.enabled is True
