"""Summary: Tests for the urllib transport.

Importance: Ensures query encoding, request bodies, and network failures behave predictably.
Alternatives: Run a local HTTP server for every test.
"""

from __future__ import annotations

import io
import json
import socket
import urllib.error
import urllib.request
from typing import Any

import pytest

from omnialink.errors import ProviderApiError
from omnialink.http import HttpResponse, decode_json, send_request


class FakeUrlResponse(io.BytesIO):
    status = 200


def test_send_request_encodes_params_and_json(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}

    def fake_urlopen(request: urllib.request.Request, timeout: float) -> FakeUrlResponse:
        seen["url"] = request.full_url
        seen["body"] = request.data
        seen["content_type"] = request.get_header("Content-type")
        seen["timeout"] = timeout
        return FakeUrlResponse(b'{"ok": true}')

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    response = send_request(
        "POST",
        "https://api.test/items",
        provider="slack",
        params={"exclude_archived": True, "labelIds": ["INBOX", "UNREAD"], "cursor": None},
        json_body={"text": "hi"},
        timeout=3.0,
    )
    assert response.json() == {"ok": True}
    assert seen["url"] == "https://api.test/items?exclude_archived=true&labelIds=INBOX&labelIds=UNREAD"
    assert json.loads(seen["body"]) == {"text": "hi"}
    assert seen["content_type"].startswith("application/json")
    assert seen["timeout"] == 3.0


def test_http_errors_are_returned_not_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(request: urllib.request.Request, timeout: float) -> FakeUrlResponse:
        raise urllib.error.HTTPError(request.full_url, 400, "Bad Request", {}, io.BytesIO(b'{"error": "bad"}'))

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    response = send_request("POST", "https://oauth.test/token", provider="google", form={"code": "c"})
    assert response.status == 400
    assert response.ok is False


@pytest.mark.parametrize(
    ("failure", "code"),
    [
        (urllib.error.URLError(socket.timeout("timed out")), "timeout"),
        (urllib.error.URLError(ConnectionRefusedError("refused")), "network"),
        (TimeoutError("read timed out"), "timeout"),
    ],
)
def test_network_failures_raise_typed_errors(
    monkeypatch: pytest.MonkeyPatch, failure: Exception, code: str
) -> None:
    def fake_urlopen(request: urllib.request.Request, timeout: float) -> FakeUrlResponse:
        raise failure

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(ProviderApiError) as excinfo:
        send_request("GET", "https://slack.test/api/conversations.list", provider="slack")
    assert excinfo.value.code == code
    assert excinfo.value.provider == "slack"


def test_decode_json_rejects_non_objects() -> None:
    assert decode_json(HttpResponse(status=200, body=b""), "ai") == {}
    with pytest.raises(ProviderApiError):
        decode_json(HttpResponse(status=502, body=b"<html>Bad gateway</html>"), "ai")
    with pytest.raises(ProviderApiError):
        decode_json(HttpResponse(status=200, body=b"[1, 2]"), "ai")
