"""Summary: Slack Web API gateway.

Importance: Lists channels, posts messages, and reads channel history for summaries.
Alternatives: Use the slack_sdk WebClient.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from omnialink.errors import ProviderApiError
from omnialink.gateway import ProviderGateway, clamp_limit
from omnialink.http import HttpResponse, decode_json
from omnialink.models import SLACK, Channel, ExternalMessage, ProviderConnection, SendResult


logger = logging.getLogger(__name__)

CHANNEL_TYPES = "public_channel,private_channel,im,mpim"
SYSTEM_SUBTYPES = frozenset(
    {
        "channel_join",
        "channel_leave",
        "channel_archive",
        "channel_unarchive",
        "channel_topic",
        "channel_purpose",
        "channel_name",
        "group_join",
        "group_leave",
        "message_changed",
        "message_deleted",
        "bot_add",
        "bot_remove",
        "pinned_item",
        "unpinned_item",
    }
)
_RESERVED_OPTIONS = ("channel", "text")


class SlackGateway(ProviderGateway):
    """Summary: Calls Slack conversations and chat endpoints with a bot token.

    Importance: Slack reports failures as ok=false inside HTTP 200 bodies.
    Alternatives: Check only HTTP status codes.
    """

    provider = SLACK

    def list_channels(self, connection: ProviderConnection | None) -> list[Channel]:
        """Summary: List every non-archived conversation visible to the bot.

        Importance: Lets callers choose where to post or what to summarize.
        Alternatives: Fetch only the first page of conversations.
        """

        token = self._require_token(connection)
        channels: list[Channel] = []
        cursor: str | None = None
        while True:
            payload = self._slack_json(
                self._request(
                    "GET",
                    "conversations.list",
                    token,
                    params={
                        "types": CHANNEL_TYPES,
                        "exclude_archived": True,
                        "limit": 100,
                        "cursor": cursor,
                    },
                )
            )
            for item in payload.get("channels") or []:
                channel = _parse_channel(item)
                if channel and not channel.is_archived:
                    channels.append(channel)
            cursor = (payload.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                break
        logger.info("Listed %s Slack channels.", len(channels))
        return channels

    def send_message(
        self,
        connection: ProviderConnection | None,
        destination: str,
        text: str,
        options: dict[str, Any] | None = None,
    ) -> SendResult:
        token = self._require_token(connection)
        body = {key: value for key, value in (options or {}).items() if key not in _RESERVED_OPTIONS}
        body.update({"channel": destination, "text": text})
        payload = self._slack_json(self._request("POST", "chat.postMessage", token, json_body=body))
        logger.info("Sent Slack message to %s.", destination)
        return SendResult(
            channel=str(payload.get("channel") or destination),
            ts=str(payload.get("ts") or ""),
            ok=True,
        )

    def fetch_history(
        self, connection: ProviderConnection | None, destination: str, limit: int
    ) -> list[ExternalMessage]:
        """Summary: Fetch recent human messages from a conversation.

        Importance: Drops join, edit, and other system events before summarization.
        Alternatives: Summarize every event Slack returns.
        """

        token = self._require_token(connection)
        bound = clamp_limit(limit)
        payload = self._slack_json(
            self._request(
                "GET",
                "conversations.history",
                token,
                params={"channel": destination, "limit": bound},
            )
        )
        messages: list[ExternalMessage] = []
        for item in payload.get("messages") or []:
            message = _parse_slack_message(item)
            if message:
                messages.append(message)
        return messages[:bound]

    def _slack_json(self, response: HttpResponse) -> dict[str, Any]:
        if not response.ok:
            raise ProviderApiError(self.provider, str(response.status), "Slack request failed")
        payload = decode_json(response, self.provider)
        if not payload.get("ok"):
            code = str(payload.get("error") or "unknown_error")
            raise ProviderApiError(self.provider, code, f"Slack rejected the request: {code}")
        return payload


def _parse_channel(item: dict[str, Any]) -> Channel | None:
    """Summary: Translate a conversations.list entry into a Channel."""

    channel_id = item.get("id")
    if not channel_id:
        return None
    if item.get("is_im"):
        kind = "im"
        name = item.get("user") or channel_id
    elif item.get("is_mpim"):
        kind = "mpim"
        name = item.get("name") or channel_id
    elif item.get("is_private") or item.get("is_group"):
        kind = "private_channel"
        name = item.get("name") or channel_id
    else:
        kind = "channel"
        name = item.get("name") or channel_id
    topic = (item.get("topic") or {}).get("value") or None
    return Channel(
        id=channel_id,
        name=name,
        kind=kind,
        is_member=bool(item.get("is_member", kind in ("im", "mpim"))),
        is_archived=bool(item.get("is_archived")),
        topic=topic,
    )


def _parse_slack_message(item: dict[str, Any]) -> ExternalMessage | None:
    """Summary: Translate a conversations.history entry, skipping system events.

    Importance: Only human-authored text reaches the summarizer.
    Alternatives: Filter system events inside the summarization service.
    """

    if item.get("type") != "message" or item.get("subtype") in SYSTEM_SUBTYPES:
        return None
    text = (item.get("text") or "").strip()
    if not text:
        return None
    ts = str(item.get("ts") or "")
    try:
        timestamp = datetime.fromtimestamp(float(ts), tz=timezone.utc)
    except ValueError:
        timestamp = datetime.fromtimestamp(0, tz=timezone.utc)
    return ExternalMessage(
        external_id=ts,
        text=text,
        author_id=str(item.get("user") or item.get("bot_id") or "unknown"),
        timestamp=timestamp,
    )
