"""Summary: API integration tests.

Importance: Validates FastAPI endpoints against the OAuth, provider, and AI workflows.
Alternatives: Use manual curl testing only.
"""

from __future__ import annotations

import json
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from conftest import SLACK_TOKEN_PAYLOAD, FakeAiProvider, FakeTransport, build_config, json_response
from omnialink.api import create_app
from omnialink.services import MOTIVATIONAL_TIPS


def _client(
    tmp_path: Path,
    transport: FakeTransport | None = None,
    provider: FakeAiProvider | None = None,
    **overrides: object,
) -> TestClient:
    config = build_config(str(tmp_path / "api.db"), **overrides)
    app = create_app(config, transport=transport or FakeTransport(), ai_provider=provider or FakeAiProvider())
    return TestClient(app)


def test_health_and_status(tmp_path: Path) -> None:
    client = _client(tmp_path)
    assert client.get("/health").json() == {"status": "ok"}
    status = client.get("/integrations/status").json()
    assert status == {"slack": {"connected": False}, "google": {"connected": False}}


def test_auth_url_and_unknown_provider(tmp_path: Path) -> None:
    client = _client(tmp_path)
    url = client.get("/integrations/slack/auth").json()["auth_url"]
    query = parse_qs(urlparse(url).query)
    assert url.startswith("https://slack.com/oauth/v2/authorize")
    assert query["client_id"] == ["slack-client"]
    assert query["state"][0]
    assert client.get("/integrations/outlook/auth").status_code == 404


def test_callback_with_bad_state_redirects_without_exchange(tmp_path: Path) -> None:
    """Summary: Verify a forged callback redirects with an error and spends no code.

    Importance: The token endpoint must only see callbacks this service initiated.
    Alternatives: Return a JSON error to the browser.
    """

    transport = FakeTransport()
    client = _client(tmp_path, transport)
    response = client.get(
        "/integrations/slack/callback", params={"code": "c", "state": "forged"}, follow_redirects=False
    )
    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert location.netloc == "localhost:3000"
    assert parse_qs(location.query)["status"] == ["error"]
    assert transport.calls == []


def test_successful_callback_connects_slack(tmp_path: Path) -> None:
    transport = FakeTransport().add("POST", "oauth.v2.access", json_response(SLACK_TOKEN_PAYLOAD))
    client = _client(tmp_path, transport, api_key="k")
    headers = {"X-API-Key": "k"}
    url = client.get("/integrations/slack/auth", headers=headers).json()["auth_url"]
    state = parse_qs(urlparse(url).query)["state"][0]
    response = client.get(
        "/integrations/slack/callback", params={"code": "c", "state": state}, follow_redirects=False
    )
    assert response.status_code == 302
    assert "status=success" in response.headers["location"]
    assert "xoxb" not in response.headers["location"]
    status = client.get("/integrations/status", headers=headers).json()
    assert status["slack"]["connected"] is True
    assert status["slack"]["account_id"] == "T1"


def test_api_key_is_enforced(tmp_path: Path) -> None:
    client = _client(tmp_path, api_key="k")
    assert client.get("/integrations/status").status_code == 401
    assert client.get("/integrations/status", headers={"X-API-Key": "wrong"}).status_code == 401
    assert client.get("/integrations/status", headers={"X-API-Key": "k"}).status_code == 200
    assert client.get("/health").status_code == 200


def test_provider_actions_without_connection(tmp_path: Path) -> None:
    transport = FakeTransport()
    client = _client(tmp_path, transport)
    response = client.get("/integrations/slack/channels")
    assert response.status_code == 409
    assert response.json()["error"] == "NotConnected"
    assert response.json()["provider"] == "slack"
    assert client.post("/integrations/google/disconnect").status_code == 409
    summary = client.post("/integrations/gmail/summarize-inbox", json={"max_results": 5})
    assert summary.status_code == 409
    assert transport.calls == []


def test_unknown_user_header(tmp_path: Path) -> None:
    client = _client(tmp_path)
    assert client.get("/integrations/status", headers={"X-User-Id": "999"}).status_code == 404


def test_generate_resources(tmp_path: Path) -> None:
    reply = json.dumps({"resources": [{"title": "Designing Data-Intensive Applications", "type": "book"}]})
    client = _client(tmp_path, provider=FakeAiProvider(replies=[reply]))
    response = client.post(
        "/learning-resources/ai-generate",
        json={"topic": "Distributed systems", "typeHint": "book", "difficulty": "intermediate"},
    )
    assert response.status_code == 200
    resources = response.json()["resources"]
    assert resources[0]["type"] == "book"
    assert resources[0]["source"] == "AI_suggested"
    bad = client.post("/learning-resources/ai-generate", json={"topic": "short"})
    assert bad.status_code == 400


def test_unconfigured_ai_is_unavailable(tmp_path: Path) -> None:
    provider = FakeAiProvider()
    client = _client(tmp_path, provider=provider, ai_provider="openai", openai_api_key=None)
    response = client.post("/coach/draft", json={"instruction": "Ask the team for the weekly status update"})
    assert response.status_code == 503
    assert provider.prompts == []


def test_coach_endpoints(tmp_path: Path) -> None:
    client = _client(tmp_path, provider=FakeAiProvider(replies=["Block focus time each morning."]))
    tip = client.get("/coach/motivational-tip").json()["tip"]
    assert tip in MOTIVATIONAL_TIPS
    response = client.post("/coach/productivity", json={"summary": {"tasks_completed": 4}})
    assert response.json() == {"recommendation": "Block focus time each morning."}


def test_callback_with_non_ascii_state_redirects_with_error(tmp_path: Path) -> None:
    transport = FakeTransport()
    client = _client(tmp_path, transport)
    response = client.get(
        "/integrations/slack/callback", params={"code": "c", "state": "abc.é"}, follow_redirects=False
    )
    assert response.status_code == 302
    assert parse_qs(urlparse(response.headers["location"]).query)["status"] == ["error"]
    assert transport.calls == []
