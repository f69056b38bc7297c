"""Deterministic serialisation of incident reports."""

from blackbox.serialization.incident_json import (
    format_instant,
    parse_incident_json,
    render_incident_json,
)
from blackbox.serialization.json_writer import JsonWriter, JsonWriterError, escape_json_string

__all__ = [
    "JsonWriter",
    "JsonWriterError",
    "escape_json_string",
    "format_instant",
    "parse_incident_json",
    "render_incident_json",
]
