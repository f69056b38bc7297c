"""Sortable incident identifiers.

An id looks like ``20260111-010203.456Z-00000b``: a UTC timestamp with
millisecond precision followed by a per-process counter rendered in
zero-padded base 32. Lexicographic order of ids therefore agrees with
chronological order, and ids minted within the same millisecond still
differ by their counter suffix.
"""

from __future__ import annotations

import itertools
import re
import threading
from datetime import UTC, datetime

from blackbox.clock import Clock, utc_now
from blackbox.models.incident import IncidentId

_DIGITS = "0123456789abcdefghijklmnopqrstuv"
_SUFFIX_WIDTH = 6
_TIMESTAMP_RE = re.compile(r"^(\d{8}-\d{6}\.\d{3})(Z|[+-]\d{4})$")


def _to_base32(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 32)
        digits.append(_DIGITS[rem])
    return "".join(reversed(digits))


def format_incident_timestamp(value: datetime) -> str:
    utc = value.astimezone(UTC) if value.tzinfo is not None else value.replace(tzinfo=UTC)
    return utc.strftime("%Y%m%d-%H%M%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_incident_timestamp(incident_id: str) -> datetime | None:
    """Return the creation instant embedded in *incident_id*, or None."""
    timestamp, sep, _suffix = incident_id.rpartition("-")
    if not sep or not timestamp:
        return None
    match = _TIMESTAMP_RE.match(timestamp)
    if match is None:
        return None
    stamp, offset = match.groups()
    if offset == "Z":
        offset = "+0000"
    try:
        return datetime.strptime(stamp + offset, "%Y%m%d-%H%M%S.%f%z").astimezone(UTC)
    except ValueError:
        return None


class IncidentIdGenerator:
    """Mints ids that are unique for the lifetime of the generator."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next(self, at: datetime | None = None) -> IncidentId:
        with self._lock:
            counter = next(self._counter)
        suffix = _to_base32(counter).rjust(_SUFFIX_WIDTH, "0")
        return IncidentId(f"{format_incident_timestamp(at or self._clock())}-{suffix}")

