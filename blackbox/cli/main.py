"""Blackbox command-line interface.

Commands:
    status  -- incident directory, latest incident and active policies
    list    -- recent incidents, newest first
    show    -- report of a single incident
    prune   -- enforce retention now
    dump    -- capture a manual incident from this process
    serve   -- run the daemon (heartbeats, stall detection, REST API)
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from blackbox.bundle.catalog import find_incident, list_incidents
from blackbox.bundle.naming import bundle_path
from blackbox.bundle.reader import BundleReadError, read_bundle_report, read_headline
from blackbox.config import load_config
from blackbox.models.config import BlackboxConfig
from blackbox.observability.logging import setup_logging
from blackbox.retention.manager import RetentionManager
from blackbox.runtime import CAPTURE_SKIPPED_MESSAGE, MANUAL_SCOPE, BlackboxRuntime
from blackbox.serialization.incident_json import format_instant


def _load(ctx: click.Context) -> BlackboxConfig:
    config: BlackboxConfig = ctx.obj["config"]
    return config


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Data directory (overrides BLACKBOX_DATA_DIR).",
)
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None) -> None:
    """Blackbox incident recorder."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    if data_dir is not None:
        config.data_dir = data_dir
    setup_logging(config.log.level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show Blackbox status."""
    config = _load(ctx)
    incidents = list_incidents(config.incident_dir)

    click.echo("Blackbox status")
    click.echo(f"Incidents: {config.incident_dir} ({len(incidents)})")
    if incidents:
        latest = incidents[0]
        when = format_instant(latest.created_at) if latest.created_at else "unknown"
        click.echo(f"Last incident: {latest.id} @ {when}")
    else:
        click.echo("Last incident: none")

    retention = config.retention
    max_age = "none" if retention.max_age is None else f"{int(retention.max_age.total_seconds())}s"
    click.echo(
        f"Retention: maxCount={retention.max_count}, "
        f"maxTotalBytes={retention.max_total_bytes}, maxAge={max_age}"
    )
    trigger = config.trigger
    click.echo(
        f"Triggers: cooldown={int(trigger.cooldown.total_seconds() * 1000)}ms, "
        f"debounce={int(trigger.debounce.total_seconds() * 1000)}ms, "
        f"stallDegradedMs={trigger.stall_degraded_ms}, stallCriticalMs={trigger.stall_critical_ms}"
    )
    click.echo(f"Webhook: {'enabled' if config.webhook.enabled else 'disabled'}")
    click.echo(f"REST API: {'enabled' if config.api.enabled else 'disabled'}")


@cli.command("list")
@click.option("--limit", default=10, show_default=True, type=click.IntRange(min=1), help="Maximum incidents to show.")
@click.pass_context
def list_cmd(ctx: click.Context, limit: int) -> None:
    """List recent incidents."""
    config = _load(ctx)
    recent = list_incidents(config.incident_dir, limit)
    if not recent:
        click.echo("No incidents found.")
        return

    click.echo("Recent incidents:")
    for entry in recent:
        headline = read_headline(entry.path) or "<headline unavailable>"
        click.echo(f"{entry.id} - {headline}")
        click.echo(f"  {entry.path}")


@cli.command()
@click.argument("incident_id")
@click.pass_context
def show(ctx: click.Context, incident_id: str) -> None:
    """Show the report of one incident."""
    config = _load(ctx)
    entry = find_incident(config.incident_dir, incident_id)
    if entry is None:
        raise click.ClickException(f"No incident bundle with id {incident_id!r}.")
    try:
        report = read_bundle_report(entry.path)
    except BundleReadError as exc:
        raise click.ClickException(str(exc)) from exc

    meta = report.meta
    summary = report.summary
    click.echo(f"Incident {meta.id}")
    click.echo(f"Headline: {meta.headline}")
    click.echo(f"Severity: {meta.severity.value}  Trigger: {meta.trigger}  Scope: {meta.scope or 'unknown'}")
    click.echo(f"Created: {format_instant(meta.created_at)}")
    click.echo(f"Likely cause: {summary.likely_cause}")
    click.echo("What happened:")
    for line in summary.what_happened:
        click.echo(f"  - {line}")
    click.echo("Next steps:")
    for line in summary.next_steps:
        click.echo(f"  - {line}")
    click.echo(f"Bundle: {entry.path}")


@cli.command()
@click.pass_context
def prune(ctx: click.Context) -> None:
    """Enforce the retention policy now."""
    config = _load(ctx)
    stats = RetentionManager().enforce(config.incident_dir, config.retention)
    click.echo(
        f"Scanned {stats.scanned}, deleted {stats.deleted} ({stats.bytes_deleted} bytes), "
        f"failures {stats.delete_failures}"
    )
    click.echo(f"Remaining: {stats.final_count} bundles, {stats.final_bytes} bytes")


@cli.command()
@click.option("--reason", default=None, help="Free-text reason recorded in the headline.")
@click.option("--scope", default=MANUAL_SCOPE, show_default=True, help="Scope recorded with the incident.")
@click.pass_context
def dump(ctx: click.Context, reason: str | None, scope: str) -> None:
    """Trigger a manual incident capture."""
    config = _load(ctx)
    runtime = BlackboxRuntime(config)
    try:
        incident_id = runtime.capture_manual(reason=reason, scope=scope)
    finally:
        runtime.close()

    if incident_id is None:
        click.echo(CAPTURE_SKIPPED_MESSAGE)
        ctx.exit(1)
    click.echo(f"Captured incident {incident_id}")
    click.echo(f"Bundle: {bundle_path(config.incident_dir, incident_id)}")


@cli.command()
@click.option("--api/--no-api", "api_enabled", default=None, help="Override BLACKBOX_API_ENABLED.")
@click.pass_context
def serve(ctx: click.Context, api_enabled: bool | None) -> None:
    """Run the Blackbox daemon until SIGINT/SIGTERM."""
    from blackbox.app import main

    config = _load(ctx)
    if api_enabled is not None:
        config.api.enabled = api_enabled
    asyncio.run(main(config))
