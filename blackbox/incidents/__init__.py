"""Incident identifier generation."""

from blackbox.incidents.ids import IncidentIdGenerator, parse_incident_timestamp

__all__ = ["IncidentIdGenerator", "parse_incident_timestamp"]
