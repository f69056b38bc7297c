"""Incident notifications.

Exports:
    WebhookNotifier       -- rate-limited, fire-and-forget webhook notifier.
    WebhookTransport      -- ABC for the HTTP delivery step.
    HttpxWebhookTransport -- httpx-backed transport.
    build_notifier        -- Factory used by the runtime bootstrap.
"""

from __future__ import annotations

import structlog

from blackbox.capture.protocols import IncidentNotifier, NoopNotifier
from blackbox.clock import Clock, utc_now
from blackbox.models.config import WebhookConfig
from blackbox.notifications.transport import HttpxWebhookTransport, WebhookTransport
from blackbox.notifications.webhook import WebhookNotifier, build_payload

_log = structlog.get_logger(component="notifications")

__all__ = [
    "HttpxWebhookTransport",
    "WebhookNotifier",
    "WebhookTransport",
    "build_notifier",
    "build_payload",
]


def build_notifier(config: WebhookConfig, clock: Clock = utc_now) -> IncidentNotifier:
    """Return a WebhookNotifier when a URL is configured, else a no-op notifier."""
    if not config.enabled:
        _log.info("webhook_notifier_disabled")
        return NoopNotifier()
    _log.info("webhook_notifier_enabled", cooldown_s=config.cooldown.total_seconds())
    return WebhookNotifier(
        config=config,
        transport=HttpxWebhookTransport(timeout=config.request_timeout),
        clock=clock,
    )
