"""Summary: Shared base for provider API gateways.

Importance: Gives Slack, Gmail, and Calendar clients one operation surface and one precondition check.
Alternatives: Use provider SDKs directly without a shared abstraction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from omnialink.errors import NotConnected, ProviderApiError, UnsupportedOperation
from omnialink.http import HttpResponse, Transport, bearer, decode_json, send_request
from omnialink.models import GOOGLE, AppEvent, Channel, ExternalEvent, ExternalMessage, ProviderConnection, SendResult


MAX_HISTORY_LIMIT = 100


class ProviderGateway:
    """Summary: Translation layer between a provider's wire format and internal shapes.

    Importance: Every operation checks the connection before any network call.
    Alternatives: Let each client validate tokens in its own way.
    """

    provider = "unknown"

    def __init__(self, base_url: str, transport: Transport = send_request, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def list_channels(self, connection: ProviderConnection | None) -> list[Channel]:
        raise self._unsupported("list_channels")

    def send_message(
        self,
        connection: ProviderConnection | None,
        destination: str,
        text: str,
        options: dict[str, Any] | None = None,
    ) -> SendResult:
        raise self._unsupported("send_message")

    def fetch_history(
        self, connection: ProviderConnection | None, destination: str, limit: int
    ) -> list[ExternalMessage]:
        raise self._unsupported("fetch_history")

    def send_email(
        self,
        connection: ProviderConnection | None,
        to: str,
        subject: str,
        body: str,
        in_reply_to: str | None = None,
    ) -> str:
        raise self._unsupported("send_email")

    def push_events(
        self,
        connection: ProviderConnection | None,
        events: Iterable[AppEvent],
        calendar_id: str = "primary",
        time_zone: str = "UTC",
    ) -> int:
        raise self._unsupported("push_events")

    def pull_events(
        self,
        connection: ProviderConnection | None,
        time_min: datetime,
        calendar_id: str = "primary",
    ) -> list[ExternalEvent]:
        raise self._unsupported("pull_events")

    def _require_token(self, connection: ProviderConnection | None) -> str:
        """Summary: Return the access token or fail before touching the network.

        Importance: A disconnected record never authorizes an outbound call.
        Alternatives: Send the request and let the provider reject it.
        """

        if connection is None or not connection.access_token:
            raise NotConnected(f"{self.provider} is not connected", provider=self.provider)
        return connection.access_token

    def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        params: dict[str, Any] | None = None,
        form: dict[str, str] | None = None,
        json_body: Any = None,
    ) -> HttpResponse:
        url = path if path.startswith("http") else f"{self._base_url}/{path.lstrip('/')}"
        return self._transport(
            method,
            url,
            provider=self.provider,
            params=params,
            headers=bearer(token),
            form=form,
            json_body=json_body,
            timeout=self._timeout,
        )

    def _unsupported(self, operation: str) -> UnsupportedOperation:
        return UnsupportedOperation(
            f"{self.provider} does not support {operation}", provider=self.provider
        )


class GoogleGateway(ProviderGateway):
    """Summary: Common error mapping for Google REST APIs."""

    provider = GOOGLE

    def _google_json(self, response: HttpResponse) -> dict[str, Any]:
        """Summary: Decode a Google response, mapping non-2xx statuses to ProviderApiError.

        Importance: Surfaces Google's own error message with the HTTP status as the code.
        Alternatives: Raise a generic error for every failed request.
        """

        if response.ok:
            return decode_json(response, self.provider)
        message = f"HTTP {response.status}"
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("message"):
                message = str(error["message"])
            elif isinstance(error, str):
                message = str(payload.get("error_description") or error)
        raise ProviderApiError(self.provider, str(response.status), message)


def clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_HISTORY_LIMIT))
