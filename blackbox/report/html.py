"""Self-contained ``report.html`` renderer.

The page embeds its own stylesheet and never references external
resources or scripts, so it can be opened straight from the bundle.
"""

from __future__ import annotations

from collections.abc import Iterable

from blackbox.models.incident import IncidentReport
from blackbox.serialization.incident_json import format_instant

_HTML_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#39;",
    }
)

_STYLE = (
    ":root{--bg:#f4f1ea;--fg:#1f1a13;--muted:#6b5f52;--card:#ffffff;"
    "--accent:#7c4d2a;--border:#e5ded3;}"
    'body{margin:0;font-family:"Georgia","Times New Roman",serif;background:var(--bg);'
    "color:var(--fg);line-height:1.55;}"
    "main{max-width:900px;margin:32px auto;padding:24px;}"
    "header{background:var(--card);border:1px solid var(--border);"
    "border-radius:16px;padding:24px;box-shadow:0 6px 18px rgba(0,0,0,0.05);}"
    "h1{margin:0 0 8px;font-size:32px;}"
    "h2{margin:28px 0 12px;font-size:20px;color:var(--accent);}"
    ".meta{color:var(--muted);font-size:14px;}"
    ".grid{display:grid;grid-template-columns:repeat(auto-fit,minmax(220px,1fr));gap:12px;}"
    ".card{background:var(--card);border:1px solid var(--border);border-radius:12px;padding:16px;}"
    "ul{margin:8px 0 0 18px;padding:0;}"
    "code{background:#efe8dc;padding:2px 6px;border-radius:6px;}"
)


def escape_html(value: str) -> str:
    return value.translate(_HTML_ESCAPES)


def escape_html_with_breaks(value: str) -> str:
    """HTML-escape *value*, rendering line breaks as ``<br>`` and tabs as ``&#9;``."""
    normalised = value.replace("\r\n", "\n").replace("\r", "\n")
    lines = [escape_html(line).replace("\t", "&#9;") for line in normalised.split("\n")]
    return "<br>".join(lines)


def _render_list(items: Iterable[str]) -> str:
    rows = "".join(f"<li>{escape_html_with_breaks(item)}</li>" for item in items)
    return f"<ul>{rows}</ul>"


def render_report_html(report: IncidentReport, recording_name: str = "recording.txt") -> str:
    """Render *report* as a standalone HTML document."""
    meta = report.meta
    summary = report.summary

    parts = [
        '<!doctype html><html lang="en"><head><meta charset="utf-8">',
        "<title>Blackbox Incident Report</title>",
        f"<style>{_STYLE}</style></head><body><main>",
        f'<header><div class="meta">Incident ID: {escape_html(meta.id.value)}</div>',
        f"<h1>{escape_html_with_breaks(meta.headline)}</h1>",
        f'<div class="meta">Severity: {escape_html(meta.severity.value)}'
        f" · Trigger: {escape_html(meta.trigger)}"
        f" · Created: {escape_html(format_instant(meta.created_at))}</div>",
    ]
    if meta.scope is not None:
        parts.append(f'<div class="meta">Scope: {escape_html(meta.scope)}</div>')
    parts.append("</header>")

    parts.append(
        '<section class="grid">'
        '<div class="card"><h2>Likely cause</h2><p>'
        f"{escape_html_with_breaks(summary.likely_cause)}</p></div>"
        '<div class="card"><h2>Next steps</h2>'
        f"{_render_list(summary.next_steps)}</div>"
        "</section>"
    )
    parts.append(
        f'<section class="card"><h2>What happened</h2>{_render_list(summary.what_happened)}</section>'
    )

    name = escape_html(recording_name)
    parts.append(
        f'<section class="card"><h2>How to read {name}</h2>'
        f"<p><code>{name}</code> holds the diagnostic recording captured when the incident "
        "was accepted. Text recordings list the stack of every live thread; "
        "open the file in any editor and start from the thread named in the headline.</p>"
        "</section>"
    )
    parts.append("</main></body></html>")
    return "".join(parts)
