"""Summary: Shared fixtures for OmniaLink tests.

Importance: Provides isolated config, storage, and fake HTTP and AI backends.
Alternatives: Build configuration and fakes inline in every test module.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from omnialink.ai import AiProvider
from omnialink.config import AppConfig
from omnialink.http import HttpResponse
from omnialink.models import User
from omnialink.storage.sqlite_store import SqliteStore
from omnialink.token_codec import SecretCodec


def build_config(db_path: str, **overrides: Any) -> AppConfig:
    values: dict[str, Any] = dict(
        db_path=db_path,
        ai_provider="mock",
        openai_api_key=None,
        openai_model="gpt-3.5-turbo",
        openai_base_url="https://ai.test/v1",
        api_host="127.0.0.1",
        api_port=8000,
        api_key="",
        default_user_name="Local User",
        default_user_email="local@omnialink",
        token_secret="secret",
        slack_client_id="slack-client",
        slack_client_secret="slack-secret",
        slack_redirect_uri="http://localhost:8000/integrations/slack/callback",
        slack_api_base_url="https://slack.test/api",
        google_client_id="google-client",
        google_client_secret="google-secret",
        google_redirect_uri="http://localhost:8000/integrations/google/callback",
        google_token_url="https://oauth.test/token",
        google_revoke_url="https://oauth.test/revoke",
        gmail_api_base_url="https://gmail.test/gmail/v1",
        google_calendar_base_url="https://calendar.test/calendar/v3",
        frontend_redirect_url="http://localhost:3000/integrations",
        default_time_zone="UTC",
        http_timeout_seconds=5.0,
        ai_timeout_seconds=30.0,
        oauth_state_ttl_seconds=600,
    )
    values.update(overrides)
    return AppConfig(**values)


SLACK_TOKEN_PAYLOAD = {
    "ok": True,
    "access_token": "xoxb-1",
    "scope": "chat:write,channels:read",
    "team": {"id": "T1"},
    "authed_user": {"id": "U1"},
    "bot_user_id": "B1",
}


def json_response(payload: Any, status: int = 200) -> HttpResponse:
    return HttpResponse(status=status, body=json.dumps(payload).encode("utf-8"))


@dataclass
class RecordedCall:
    method: str
    url: str
    params: dict[str, Any]
    headers: dict[str, str]
    form: dict[str, str] | None
    json_body: Any
    timeout: float


class FakeTransport:
    """Summary: Scripted stand-in for the HTTP transport.

    Importance: Lets tests assert exactly which provider calls were made.
    Alternatives: Patch urllib.request.urlopen.
    """

    def __init__(self) -> None:
        self.calls: list[RecordedCall] = []
        self._routes: list[tuple[str, str, list[HttpResponse | Exception]]] = []

    def add(self, method: str, fragment: str, *responses: HttpResponse | Exception) -> "FakeTransport":
        self._routes.append((method, fragment, list(responses)))
        return self

    def calls_to(self, fragment: str) -> list[RecordedCall]:
        return [call for call in self.calls if fragment in call.url]

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
    ) -> HttpResponse:
        self.calls.append(
            RecordedCall(method, url, dict(params or {}), dict(headers or {}), form, json_body, timeout)
        )
        for route_method, fragment, responses in self._routes:
            if route_method == method and fragment in url:
                outcome = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        raise AssertionError(f"Unexpected request: {method} {url}")


@dataclass
class FakeAiProvider(AiProvider):
    """Summary: AI provider returning scripted replies and recording prompts."""

    replies: list[str] = field(default_factory=lambda: ["Summary text"])
    prompts: list[tuple[str, str, int, float]] = field(default_factory=list)

    def generate(self, system_role: str, prompt: str, max_tokens: int, temperature: float) -> str:
        self.prompts.append((system_role, prompt, max_tokens, temperature))
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return build_config(str(tmp_path / "test.db"))


@pytest.fixture
def store(config: AppConfig) -> SqliteStore:
    sqlite_store = SqliteStore(config.db_path, SecretCodec(config.token_secret))
    sqlite_store.initialize()
    return sqlite_store


@pytest.fixture
def user_id(store: SqliteStore) -> int:
    return store.ensure_user(User(display_name="Ada", email="ada@example.com"))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
