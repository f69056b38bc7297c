"""Human-readable incident report rendering."""

from blackbox.report.html import escape_html, escape_html_with_breaks, render_report_html

__all__ = ["escape_html", "escape_html_with_breaks", "render_report_html"]
