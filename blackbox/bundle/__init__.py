"""Incident bundle assembly, naming and inspection."""

from blackbox.bundle.attachment import BundleAttachment, InvalidAttachmentPathError
from blackbox.bundle.builder import BundleBuilder
from blackbox.bundle.catalog import IncidentFile, find_incident, list_incidents
from blackbox.bundle.naming import bundle_file_name, bundle_path
from blackbox.bundle.reader import BundleReadError, read_bundle_report, read_headline

__all__ = [
    "BundleAttachment",
    "BundleBuilder",
    "BundleReadError",
    "IncidentFile",
    "InvalidAttachmentPathError",
    "bundle_file_name",
    "bundle_path",
    "find_incident",
    "list_incidents",
    "read_bundle_report",
    "read_headline",
]
