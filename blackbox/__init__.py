"""Blackbox: embedded incident-capture daemon.

Watches liveness heartbeats and manual requests, gates them through a
cooldown/debounce trigger engine, and writes one deterministic zip bundle
per accepted incident while keeping the bundle directory within its
retention limits.
"""

__version__ = "0.3.0"
