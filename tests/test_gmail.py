"""Summary: Tests for the Gmail gateway and its parsing helpers.

Importance: Ensures Gmail payloads are normalized and replies keep their thread.
Alternatives: Use integration tests with the live Gmail API.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from email import message_from_bytes

import pytest

from conftest import FakeTransport, json_response
from omnialink.errors import NotConnected, ProviderApiError
from omnialink.gmail import GmailGateway, _extract_gmail_body, _parse_gmail_headers, _parse_gmail_message
from omnialink.models import ProviderConnection


CONNECTION = ProviderConnection(
    user_id=1,
    provider="google",
    access_token="ya29",
    refresh_token="1//r",
    scope="gmail.modify",
    account_id="primary",
    connected_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
)


def _encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("utf-8").rstrip("=")


def _decode_raw(raw: str) -> bytes:
    return base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4))


def _gateway(transport: FakeTransport) -> GmailGateway:
    return GmailGateway("https://gmail.test/gmail/v1", transport)


def test_parse_gmail_headers_is_case_insensitive() -> None:
    parsed = _parse_gmail_headers([{"name": "Subject", "value": "Hello"}, {"name": "FROM", "value": "a@b.c"}])
    assert parsed == {"subject": "Hello", "from": "a@b.c"}


def test_extract_gmail_body_prefers_plain_text() -> None:
    """Summary: Extract plain text bodies from Gmail payloads.

    Importance: Ensures readable text reaches the summarizer.
    Alternatives: Fall back to Gmail snippets only.
    """

    payload = {
        "mimeType": "multipart/alternative",
        "parts": [
            {"mimeType": "text/plain", "body": {"data": _encode("Hello")}},
            {"mimeType": "text/html", "body": {"data": _encode("<p>Hello</p>")}},
        ],
    }
    assert _extract_gmail_body(payload) == "Hello"
    html_only = {"mimeType": "text/html", "body": {"data": _encode("<p>Hi</p>")}}
    assert _extract_gmail_body(html_only) == "<p>Hi</p>"


def test_parse_gmail_message_falls_back_to_snippet() -> None:
    message = _parse_gmail_message(
        {
            "id": "m1",
            "snippet": "Quarterly numbers attached",
            "internalDate": "1700000000000",
            "payload": {"headers": [{"name": "From", "value": "cfo@example.com"}]},
        }
    )
    assert message.text == "Quarterly numbers attached"
    assert message.subject == "No Subject"
    assert message.author_id == "cfo@example.com"
    assert message.timestamp == datetime.fromtimestamp(1700000000, tz=timezone.utc)


def test_fetch_history_lists_inbox_then_loads_messages(transport: FakeTransport) -> None:
    transport.add(
        "GET",
        "users/me/messages/m1",
        json_response(
            {
                "id": "m1",
                "payload": {
                    "headers": [{"name": "Subject", "value": "Launch"}],
                    "mimeType": "text/plain",
                    "body": {"data": _encode("We launch Monday")},
                },
            }
        ),
    )
    transport.add("GET", "users/me/messages", json_response({"messages": [{"id": "m1"}]}))
    messages = _gateway(transport).fetch_history(CONNECTION, "INBOX", 5)
    assert [message.text for message in messages] == ["We launch Monday"]
    listing = transport.calls[0]
    assert listing.params == {"labelIds": "INBOX", "maxResults": 5}
    assert transport.calls[1].params == {"format": "full"}


def test_send_email_threads_reply(transport: FakeTransport) -> None:
    """Summary: Verify replies carry threadId, In-Reply-To, and References.

    Importance: Keeps replies in the recipient's conversation.
    Alternatives: Send every message as a new thread.
    """

    transport.add(
        "GET",
        "users/me/messages/orig",
        json_response(
            {
                "id": "orig",
                "threadId": "t-1",
                "payload": {
                    "headers": [
                        {"name": "Message-ID", "value": "<abc@mail>"},
                        {"name": "References", "value": "<root@mail>"},
                    ]
                },
            }
        ),
    )
    transport.add("POST", "users/me/messages/send", json_response({"id": "sent-1"}))
    sent = _gateway(transport).send_email(CONNECTION, "bob@example.com", "Re: plan", "Sounds good", "orig")
    assert sent == "sent-1"
    body = transport.calls_to("messages/send")[0].json_body
    assert body["threadId"] == "t-1"
    mime = message_from_bytes(_decode_raw(body["raw"]))
    assert mime["In-Reply-To"] == "<abc@mail>"
    assert mime["References"] == "<root@mail> <abc@mail>"
    assert mime["To"] == "bob@example.com"


def test_send_email_unthreaded_when_original_missing(transport: FakeTransport) -> None:
    transport.add("GET", "users/me/messages/gone", json_response({"error": {"message": "Not Found"}}, status=404))
    transport.add("POST", "users/me/messages/send", json_response({"id": "sent-2"}))
    assert _gateway(transport).send_email(CONNECTION, "bob@example.com", "Hi", "Body", "gone") == "sent-2"
    body = transport.calls_to("messages/send")[0].json_body
    assert "threadId" not in body
    assert message_from_bytes(_decode_raw(body["raw"]))["In-Reply-To"] is None


def test_google_errors_carry_status_and_message(transport: FakeTransport) -> None:
    transport.add(
        "POST",
        "users/me/messages/send",
        json_response({"error": {"code": 401, "message": "Invalid Credentials"}}, status=401),
    )
    with pytest.raises(ProviderApiError) as excinfo:
        _gateway(transport).send_email(CONNECTION, "bob@example.com", "Hi", "Body")
    assert excinfo.value.code == "401"
    assert excinfo.value.detail == "Invalid Credentials"


def test_gmail_requires_connection(transport: FakeTransport) -> None:
    with pytest.raises(NotConnected):
        _gateway(transport).send_email(None, "bob@example.com", "Hi", "Body")
    assert transport.calls == []


def test_fetch_history_never_exceeds_limit(transport: FakeTransport) -> None:
    for message_id in ("m1", "m2", "m3"):
        transport.add(
            "GET",
            f"users/me/messages/{message_id}",
            json_response({"id": message_id, "snippet": f"Snippet {message_id}", "payload": {}}),
        )
    transport.add(
        "GET", "users/me/messages", json_response({"messages": [{"id": "m1"}, {"id": "m2"}, {"id": "m3"}]})
    )
    messages = _gateway(transport).fetch_history(CONNECTION, "INBOX", 2)
    assert [message.external_id for message in messages] == ["m1", "m2"]
    assert transport.calls_to("users/me/messages/m3") == []
