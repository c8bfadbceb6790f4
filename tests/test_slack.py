"""Summary: Tests for the Slack gateway.

Importance: Ensures Slack payloads map to channels and messages and failures are typed.
Alternatives: Use integration tests with a live Slack workspace.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from conftest import FakeTransport, json_response
from omnialink.errors import NotConnected, ProviderApiError, UnsupportedOperation
from omnialink.models import ProviderConnection
from omnialink.slack import SlackGateway


CONNECTION = ProviderConnection(
    user_id=1,
    provider="slack",
    access_token="xoxb-1",
    refresh_token=None,
    scope="chat:write",
    account_id="T1",
    connected_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
)


def _gateway(transport: FakeTransport) -> SlackGateway:
    return SlackGateway("https://slack.test/api", transport, timeout=5.0)


@pytest.mark.parametrize("connection", [None, replace(CONNECTION, access_token=""), replace(CONNECTION, access_token=None)])
def test_operations_require_token_without_network(transport: FakeTransport, connection: ProviderConnection | None) -> None:
    """Summary: Verify disconnected records never reach the network.

    Importance: Stale or cleared credentials must not authorize outbound calls.
    Alternatives: Let Slack reject the request with not_authed.
    """

    gateway = _gateway(transport)
    with pytest.raises(NotConnected):
        gateway.list_channels(connection)
    with pytest.raises(NotConnected):
        gateway.send_message(connection, "C1", "hi")
    with pytest.raises(NotConnected):
        gateway.fetch_history(connection, "C1", 10)
    assert transport.calls == []


def test_list_channels_follows_cursor_and_drops_archived(transport: FakeTransport) -> None:
    transport.add(
        "GET",
        "conversations.list",
        json_response(
            {
                "ok": True,
                "channels": [
                    {"id": "C1", "name": "general", "is_member": True, "topic": {"value": "News"}},
                    {"id": "C2", "name": "old", "is_archived": True},
                ],
                "response_metadata": {"next_cursor": "page2"},
            }
        ),
        json_response(
            {
                "ok": True,
                "channels": [
                    {"id": "D1", "is_im": True, "user": "U9"},
                    {"id": "G1", "name": "secret", "is_private": True, "is_member": False},
                ],
                "response_metadata": {"next_cursor": ""},
            }
        ),
    )
    channels = _gateway(transport).list_channels(CONNECTION)
    assert [(channel.id, channel.kind) for channel in channels] == [
        ("C1", "channel"),
        ("D1", "im"),
        ("G1", "private_channel"),
    ]
    assert channels[0].topic == "News"
    first, second = transport.calls
    assert first.params["types"] == "public_channel,private_channel,im,mpim"
    assert first.params["exclude_archived"] is True
    assert second.params["cursor"] == "page2"
    assert first.headers["Authorization"] == "Bearer xoxb-1"


def test_slack_error_maps_to_provider_api_error(transport: FakeTransport) -> None:
    transport.add("GET", "conversations.list", json_response({"ok": False, "error": "invalid_auth"}))
    with pytest.raises(ProviderApiError) as excinfo:
        _gateway(transport).list_channels(CONNECTION)
    assert excinfo.value.code == "invalid_auth"
    assert excinfo.value.provider == "slack"
    assert len(transport.calls) == 1


def test_fetch_history_filters_system_events_and_clamps_limit(transport: FakeTransport) -> None:
    """Summary: Verify joins, edits, and blank messages are dropped.

    Importance: Only human content should be summarized.
    Alternatives: Filter in the summarization pipeline.
    """

    transport.add(
        "GET",
        "conversations.history",
        json_response(
            {
                "ok": True,
                "messages": [
                    {"type": "message", "text": "Ship it", "user": "U1", "ts": "1700000200.000100"},
                    {"type": "message", "subtype": "channel_join", "text": "<@U2> joined", "ts": "1700000100.0"},
                    {"type": "message", "subtype": "message_changed", "ts": "1700000050.0"},
                    {"type": "message", "text": "   ", "user": "U3", "ts": "1700000040.0"},
                    {"type": "message", "text": "Plan review", "user": "U2", "ts": "1700000000.000100"},
                ],
            }
        ),
    )
    messages = _gateway(transport).fetch_history(CONNECTION, "C1", 500)
    assert [message.text for message in messages] == ["Ship it", "Plan review"]
    assert messages[0].author_id == "U1"
    assert transport.calls[0].params["limit"] == 100


def test_fetch_history_empty_channel_is_not_an_error(transport: FakeTransport) -> None:
    transport.add("GET", "conversations.history", json_response({"ok": True, "messages": []}))
    assert _gateway(transport).fetch_history(CONNECTION, "C1", 0) == []
    assert transport.calls[0].params["limit"] == 1


def test_send_message_options_cannot_override_destination(transport: FakeTransport) -> None:
    transport.add("POST", "chat.postMessage", json_response({"ok": True, "channel": "C1", "ts": "1.2"}))
    result = _gateway(transport).send_message(
        CONNECTION, "C1", "hello", {"channel": "C999", "text": "other", "unfurl_links": False}
    )
    assert result.ts == "1.2"
    assert transport.calls[0].json_body == {"unfurl_links": False, "channel": "C1", "text": "hello"}


def test_timeouts_surface_as_provider_errors(transport: FakeTransport) -> None:
    transport.add("POST", "chat.postMessage", ProviderApiError("slack", "timeout", "timed out"))
    with pytest.raises(ProviderApiError) as excinfo:
        _gateway(transport).send_message(CONNECTION, "C1", "hello")
    assert excinfo.value.code == "timeout"
    assert len(transport.calls) == 1


def test_slack_does_not_send_email(transport: FakeTransport) -> None:
    with pytest.raises(UnsupportedOperation):
        _gateway(transport).send_email(CONNECTION, "a@example.com", "s", "b")


def test_fetch_history_never_exceeds_limit(transport: FakeTransport) -> None:
    messages = [
        {"type": "message", "text": f"Note {index}", "user": "U1", "ts": f"17000000{index}.0"} for index in range(5)
    ]
    transport.add("GET", "conversations.history", json_response({"ok": True, "messages": messages}))
    history = _gateway(transport).fetch_history(CONNECTION, "C1", 2)
    assert [message.text for message in history] == ["Note 0", "Note 1"]
