"""Summary: Minimal HTTP transport shared by provider clients and the AI provider.

Importance: One place enforces timeouts and turns network failures into typed errors.
Alternatives: Use requests or a provider SDK per integration.
"""

from __future__ import annotations

import json
import socket
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Protocol

from omnialink.errors import ProviderApiError


@dataclass(frozen=True)
class HttpResponse:
    """Summary: Status and raw body of a completed HTTP exchange.

    Importance: Lets clients inspect non-2xx responses without exception plumbing.
    Alternatives: Raise on every non-2xx status inside the transport.
    """

    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Summary: Decode the body as JSON, treating an empty body as an empty object."""

        if not self.body:
            return {}
        return json.loads(self.body.decode("utf-8"))


class Transport(Protocol):
    def __call__(
        self,
        method: str,
        url: str,
        *,
        provider: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        form: dict[str, str] | None = None,
        json_body: Any = None,
        timeout: float = 10.0,
    ) -> HttpResponse: ...


def send_request(
    method: str,
    url: str,
    *,
    provider: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    form: dict[str, str] | None = None,
    json_body: Any = None,
    timeout: float = 10.0,
) -> HttpResponse:
    """Summary: Perform one HTTP request with a bounded timeout and no retries.

    Importance: Timeouts and connection failures surface to the caller immediately.
    Alternatives: Wrap calls in a retry-with-backoff helper.
    """

    if params:
        pairs = [
            (key, _query_value(item))
            for key, value in params.items()
            if value is not None
            for item in (value if isinstance(value, (list, tuple)) else [value])
        ]
        query = urllib.parse.urlencode(pairs)
        url = f"{url}{'&' if '?' in url else '?'}{query}"
    request_headers = dict(headers or {})
    data: bytes | None = None
    if form is not None:
        data = urllib.parse.urlencode(form).encode("utf-8")
        request_headers.setdefault("Content-Type", "application/x-www-form-urlencoded")
    elif json_body is not None:
        data = json.dumps(json_body).encode("utf-8")
        request_headers.setdefault("Content-Type", "application/json; charset=utf-8")
    request = urllib.request.Request(url, data=data, headers=request_headers, method=method)
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return HttpResponse(status=response.status, body=response.read())
    except urllib.error.HTTPError as exc:
        return HttpResponse(status=exc.code, body=exc.read() or b"")
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, (socket.timeout, TimeoutError)):
            raise ProviderApiError(provider, "timeout", f"{method} {_safe_url(url)} timed out") from exc
        raise ProviderApiError(provider, "network", str(exc.reason)) from exc
    except (socket.timeout, TimeoutError) as exc:
        raise ProviderApiError(provider, "timeout", f"{method} {_safe_url(url)} timed out") from exc


def bearer(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def decode_json(response: HttpResponse, provider: str) -> dict[str, Any]:
    """Summary: Decode a provider JSON object or raise a typed error.

    Importance: Untrusted provider bodies never leak as raw decode errors.
    Alternatives: Let json.JSONDecodeError propagate to callers.
    """

    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderApiError(provider, "invalid_response", "Response body is not JSON") from exc
    if not isinstance(payload, dict):
        raise ProviderApiError(provider, "invalid_response", "Response body is not a JSON object")
    return payload


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _safe_url(url: str) -> str:
    return url.split("?", 1)[0]
