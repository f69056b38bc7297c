"""HTTP transport for webhook notifications."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta

import httpx
import structlog

_log = structlog.get_logger(component="notifications.transport")

_CONTENT_TYPE = "application/json; charset=utf-8"


class WebhookTransport(ABC):
    """Delivers a pre-serialised JSON payload to a URL."""

    @abstractmethod
    def post(self, url: str, payload: str) -> bool:
        """POST *payload* to *url*.

        Returns:
            True  -- the endpoint answered with a 2xx status.
            False -- delivery failed (already logged inside implementation).
        """


class HttpxWebhookTransport(WebhookTransport):
    """Synchronous httpx transport, meant to run on a worker thread.

    Args:
        timeout: Per-request timeout.
        client:  Optional pre-built client (tests pass one backed by
                 ``httpx.MockTransport``). A client passed in is not closed
                 by :meth:`close`.
    """

    def __init__(self, timeout: timedelta = timedelta(seconds=10), client: httpx.Client | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout.total_seconds())

    def post(self, url: str, payload: str) -> bool:
        try:
            response = self._client.post(
                url,
                content=payload.encode("utf-8"),
                headers={"Content-Type": _CONTENT_TYPE},
            )
        except httpx.TimeoutException:
            _log.warning("webhook_request_timeout", url=_redact(url))
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_http_error", url=_redact(url), error=str(exc))
            return False

        if response.is_success:
            return True
        _log.warning(
            "webhook_non_2xx_response",
            status_code=response.status_code,
            body=response.text[:200],
        )
        return False

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


def _redact(url: str) -> str:
    """Drop the path, which for most webhook providers embeds the secret token."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return "<invalid>"
    return f"{parsed.scheme}://{parsed.host}"
