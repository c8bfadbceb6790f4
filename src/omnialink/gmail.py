"""Summary: Gmail API gateway.

Importance: Reads inbox messages for summaries and sends drafted replies with threading.
Alternatives: Use IMAP/SMTP or the Google API client library.
"""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import parsedate_to_datetime
from typing import Any

from omnialink.errors import ProviderApiError
from omnialink.gateway import GoogleGateway, clamp_limit
from omnialink.models import ExternalMessage, ProviderConnection


logger = logging.getLogger(__name__)

INBOX = "INBOX"


class GmailGateway(GoogleGateway):
    """Summary: Reads and sends mail via the Gmail REST API using OAuth tokens.

    Importance: Enables OAuth-based access without IMAP passwords.
    Alternatives: Use IMAP or a provider SDK.
    """

    def fetch_history(
        self, connection: ProviderConnection | None, destination: str = INBOX, limit: int = 10
    ) -> list[ExternalMessage]:
        """Summary: Fetch recent messages carrying a label, one detail request per id.

        Importance: Provides readable bodies for inbox summarization.
        Alternatives: Use provider sync APIs or push notifications.
        """

        token = self._require_token(connection)
        bound = clamp_limit(limit)
        listing = self._google_json(
            self._request(
                "GET",
                "users/me/messages",
                token,
                params={"labelIds": destination or INBOX, "maxResults": bound},
            )
        )
        messages: list[ExternalMessage] = []
        for item in (listing.get("messages") or [])[:bound]:
            message_id = item.get("id")
            if not message_id:
                continue
            detail = self._google_json(
                self._request("GET", f"users/me/messages/{message_id}", token, params={"format": "full"})
            )
            parsed = _parse_gmail_message(detail)
            if parsed:
                messages.append(parsed)
        return messages

    def send_email(
        self,
        connection: ProviderConnection | None,
        to: str,
        subject: str,
        body: str,
        in_reply_to: str | None = None,
    ) -> str:
        """Summary: Send a plain-text email, threading it under an original message when given.

        Importance: Replies stay in the recipient's conversation view.
        Alternatives: Always send new threads.
        """

        token = self._require_token(connection)
        message = EmailMessage()
        message["To"] = to
        message["Subject"] = subject
        request_body: dict[str, Any] = {}
        if in_reply_to:
            thread = self._thread_headers(token, in_reply_to)
            if thread:
                thread_id, message_id_header, references = thread
                if thread_id:
                    request_body["threadId"] = thread_id
                if message_id_header:
                    message["In-Reply-To"] = message_id_header
                    message["References"] = (
                        f"{references} {message_id_header}" if references else message_id_header
                    )
        message.set_content(body)
        request_body["raw"] = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")
        payload = self._google_json(
            self._request("POST", "users/me/messages/send", token, json_body=request_body)
        )
        sent_id = str(payload.get("id") or "")
        logger.info("Sent Gmail message %s.", sent_id)
        return sent_id

    def _thread_headers(self, token: str, original_id: str) -> tuple[str | None, str | None, str | None] | None:
        try:
            original = self._google_json(
                self._request(
                    "GET",
                    f"users/me/messages/{original_id}",
                    token,
                    params={
                        "format": "metadata",
                        "metadataHeaders": ["Message-ID", "References"],
                    },
                )
            )
        except ProviderApiError as exc:
            logger.warning("Could not load original message %s, sending unthreaded: %s", original_id, exc)
            return None
        headers = _parse_gmail_headers((original.get("payload") or {}).get("headers") or [])
        return (
            original.get("threadId"),
            headers.get("message-id"),
            headers.get("references"),
        )


def _parse_gmail_message(message: dict[str, Any]) -> ExternalMessage | None:
    """Summary: Parse a Gmail message payload into an ExternalMessage.

    Importance: Normalizes Gmail payloads into the shared message shape.
    Alternatives: Hand raw Gmail payloads to the summarizer.
    """

    message_id = message.get("id")
    if not message_id:
        return None
    payload = message.get("payload") or {}
    headers = _parse_gmail_headers(payload.get("headers") or [])
    text = _extract_gmail_body(payload) or (message.get("snippet") or "").strip()
    if not text:
        return None
    return ExternalMessage(
        external_id=message_id,
        text=text,
        author_id=headers.get("from", "Unknown Sender"),
        timestamp=_message_timestamp(message.get("internalDate"), headers.get("date")),
        subject=headers.get("subject") or "No Subject",
    )


def _parse_gmail_headers(headers: list[dict[str, Any]]) -> dict[str, str]:
    normalized: dict[str, str] = {}
    for header in headers:
        name = header.get("name")
        value = header.get("value")
        if name and value:
            normalized[name.lower()] = value
    return normalized


def _extract_gmail_body(payload: dict[str, Any]) -> str:
    """Summary: Extract a plain text body from a Gmail payload.

    Importance: Prefers text/plain parts and falls back to any other decoded part.
    Alternatives: Use the snippet only.
    """

    text_parts: list[str] = []
    fallback_parts: list[str] = []
    for part in _walk_gmail_parts(payload):
        data = (part.get("body") or {}).get("data")
        if not data:
            continue
        decoded = _decode_base64url(data).strip()
        if not decoded:
            continue
        if part.get("mimeType") == "text/plain":
            text_parts.append(decoded)
        else:
            fallback_parts.append(decoded)
    return "\n".join(text_parts or fallback_parts).strip()


def _walk_gmail_parts(payload: dict[str, Any]) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = [payload]
    for part in payload.get("parts") or []:
        parts.extend(_walk_gmail_parts(part))
    return parts


def _decode_base64url(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("utf-8")).decode("utf-8", errors="ignore")


def _message_timestamp(internal_date: Any, date_header: str | None) -> datetime:
    if internal_date:
        try:
            return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
        except (TypeError, ValueError):
            pass
    if date_header:
        try:
            parsed = parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(0, tz=timezone.utc)
