"""Tests for the webhook notifier and its httpx transport."""

from __future__ import annotations

import json
from concurrent.futures import Executor, Future
from datetime import timedelta
from pathlib import Path
from typing import Any

import httpx
from helpers import MutableClock, make_report

from blackbox.capture.protocols import NoopNotifier
from blackbox.models.config import WebhookConfig
from blackbox.models.incident import Severity
from blackbox.notifications import build_notifier
from blackbox.notifications.transport import HttpxWebhookTransport, WebhookTransport
from blackbox.notifications.webhook import WebhookNotifier, build_payload

_URL = "https://chat.example.test/api/webhooks/123/token"
_BUNDLE = Path("incident-x.zip")


class _InlineExecutor(Executor):
    def submit(self, fn: Any, /, *args: Any, **kwargs: Any) -> Future[Any]:
        future: Future[Any] = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class _FakeTransport(WebhookTransport):
    def __init__(self, result: bool = True, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.posts: list[tuple[str, str]] = []
        self.closed = False

    def post(self, url: str, payload: str) -> bool:
        self.posts.append((url, payload))
        if self.error is not None:
            raise self.error
        return self.result

    def close(self) -> None:
        self.closed = True


def _notifier(
    transport: _FakeTransport,
    clock: MutableClock | None = None,
    url: str = _URL,
    cooldown: timedelta = timedelta(minutes=1),
) -> WebhookNotifier:
    return WebhookNotifier(
        config=WebhookConfig(url=url, cooldown=cooldown),
        transport=transport,
        clock=clock or MutableClock(),
        executor=_InlineExecutor(),
    )


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------


class TestPayload:
    def test_content_and_username(self) -> None:
        report = make_report(severity=Severity.CRITICAL, headline="Heartbeat stalled world-1 (12000ms)")
        assert build_payload(report, "Blackbox") == (
            '{"content":"[CRITICAL] Heartbeat stalled world-1 (12000ms) (scope: world-1)","username":"Blackbox"}'
        )

    def test_blank_username_is_omitted(self) -> None:
        assert "username" not in json.loads(build_payload(make_report(), "  "))

    def test_missing_scope_reads_unknown(self) -> None:
        content = json.loads(build_payload(make_report(scope=None)))["content"]
        assert content.endswith("(scope: unknown)")

    def test_special_characters_are_escaped(self) -> None:
        report = make_report(headline='say "hi" \\ now\nplease')
        payload = build_payload(report)
        assert '\\"hi\\"' in payload
        assert "\\\\" in payload
        assert "\\n" in payload
        assert json.loads(payload)["content"].startswith('[DEGRADED] say "hi" \\ now\nplease')


# ---------------------------------------------------------------------------
# Notifier
# ---------------------------------------------------------------------------


class TestWebhookNotifier:
    def test_sends_payload_to_configured_url(self) -> None:
        transport = _FakeTransport()
        _notifier(transport).on_incident(make_report(), _BUNDLE)

        assert len(transport.posts) == 1
        url, payload = transport.posts[0]
        assert url == _URL
        assert json.loads(payload)["username"] == "Blackbox"

    def test_blank_url_disables_sending(self) -> None:
        transport = _FakeTransport()
        _notifier(transport, url="   ").on_incident(make_report(), _BUNDLE)
        assert transport.posts == []

    def test_rate_limited_by_cooldown(self) -> None:
        clock = MutableClock()
        transport = _FakeTransport()
        notifier = _notifier(transport, clock)

        notifier.on_incident(make_report(), _BUNDLE)
        clock.advance(seconds=59)
        notifier.on_incident(make_report(), _BUNDLE)
        assert len(transport.posts) == 1

        clock.advance(seconds=1)
        notifier.on_incident(make_report(), _BUNDLE)
        assert len(transport.posts) == 2

    def test_failed_attempt_still_consumes_cooldown(self) -> None:
        clock = MutableClock()
        transport = _FakeTransport(result=False)
        notifier = _notifier(transport, clock)

        notifier.on_incident(make_report(), _BUNDLE)
        clock.advance(seconds=30)
        notifier.on_incident(make_report(), _BUNDLE)

        assert len(transport.posts) == 1

    def test_transport_exception_is_swallowed(self) -> None:
        transport = _FakeTransport(error=RuntimeError("boom"))
        _notifier(transport).on_incident(make_report(), _BUNDLE)
        assert len(transport.posts) == 1

    def test_close_closes_transport(self) -> None:
        transport = _FakeTransport()
        notifier = _notifier(transport)
        notifier.on_incident(make_report(), _BUNDLE)
        notifier.close(timeout=1.0)
        assert transport.closed

    def test_default_executor_delivers_in_background(self) -> None:
        transport = _FakeTransport()
        notifier = WebhookNotifier(WebhookConfig(url=_URL), transport, MutableClock())
        notifier.on_incident(make_report(), _BUNDLE)
        notifier.close(timeout=5.0)
        assert len(transport.posts) == 1


class TestBuildNotifier:
    def test_disabled_without_url(self) -> None:
        assert isinstance(build_notifier(WebhookConfig()), NoopNotifier)

    def test_enabled_with_url(self) -> None:
        notifier = build_notifier(WebhookConfig(url=_URL))
        assert isinstance(notifier, WebhookNotifier)
        notifier.close(timeout=1.0)


# ---------------------------------------------------------------------------
# httpx transport
# ---------------------------------------------------------------------------


def _transport(handler: Any) -> HttpxWebhookTransport:
    return HttpxWebhookTransport(client=httpx.Client(transport=httpx.MockTransport(handler)))


class TestHttpxWebhookTransport:
    def test_posts_json_with_utf8_content_type(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        assert _transport(handler).post(_URL, '{"content":"café"}') is True
        assert seen[0].method == "POST"
        assert seen[0].headers["content-type"] == "application/json; charset=utf-8"
        assert seen[0].content == '{"content":"café"}'.encode()

    def test_non_2xx_returns_false(self) -> None:
        assert _transport(lambda request: httpx.Response(429, text="slow down")).post(_URL, "{}") is False

    def test_connection_error_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert _transport(handler).post(_URL, "{}") is False

    def test_timeout_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        assert _transport(handler).post(_URL, "{}") is False
