"""Summary: OAuth helper utilities for Slack and Google integrations.

Importance: Generates authorization URLs, signed state tokens, and token exchanges without extra dependencies.
Alternatives: Use provider SDKs for OAuth flows.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import secrets
import time
import urllib.parse
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from omnialink.config import AppConfig
from omnialink.errors import (
    ConfigurationError,
    InvalidOAuthState,
    ProviderApiError,
    TokenExchangeFailed,
)
from omnialink.http import Transport, decode_json, send_request
from omnialink.models import GOOGLE, PROVIDERS, SLACK


logger = logging.getLogger(__name__)

SLACK_AUTHORIZE_URL = "https://slack.com/oauth/v2/authorize"
GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"

SLACK_SCOPES = (
    "chat:write",
    "chat:write.customize",
    "channels:read",
    "groups:read",
    "im:read",
    "mpim:read",
    "users:read",
    "users:read.email",
    "channels:history",
    "groups:history",
    "im:history",
    "mpim:history",
)
GOOGLE_SCOPES = (
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/gmail.modify",
)


@dataclass(frozen=True)
class SlackTokenResponse:
    """Summary: Normalized Slack oauth.v2.access payload.

    Importance: Keeps Slack's nested team and user fields out of the service layer.
    Alternatives: Store the raw provider response without normalization.
    """

    access_token: str
    scope: str
    team_id: str | None
    authed_user_id: str | None
    bot_user_id: str | None

    @staticmethod
    def from_response(payload: dict[str, Any]) -> "SlackTokenResponse":
        access_token = payload.get("access_token")
        if not access_token:
            raise TokenExchangeFailed("Slack token response missing access_token", provider=SLACK)
        team = payload.get("team") or {}
        authed_user = payload.get("authed_user") or {}
        return SlackTokenResponse(
            access_token=access_token,
            scope=payload.get("scope") or "",
            team_id=team.get("id"),
            authed_user_id=authed_user.get("id"),
            bot_user_id=payload.get("bot_user_id"),
        )


@dataclass(frozen=True)
class GoogleTokenResponse:
    """Summary: Normalized Google token endpoint payload.

    Importance: Converts relative expiry into an absolute timestamp for refresh decisions.
    Alternatives: Recompute expiry from the raw payload on every call.
    """

    access_token: str
    refresh_token: str | None
    scope: str
    expires_at: datetime | None

    @staticmethod
    def from_response(payload: dict[str, Any], now: datetime | None = None) -> "GoogleTokenResponse":
        access_token = payload.get("access_token")
        if not access_token:
            raise TokenExchangeFailed("Google token response missing access_token", provider=GOOGLE)
        expires_in = payload.get("expires_in")
        expires_at = None
        if isinstance(expires_in, (int, float)):
            issued = now or datetime.now(timezone.utc)
            expires_at = issued + timedelta(seconds=expires_in)
        return GoogleTokenResponse(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            scope=payload.get("scope") or "",
            expires_at=expires_at,
        )


def sign_state(secret: str, user_id: int, provider: str, ttl_seconds: int, now: float | None = None) -> str:
    """Summary: Create a signed, expiring OAuth state token for a user.

    Importance: Binds the callback to the user who started the flow without server-side storage.
    Alternatives: Keep pending states in a process-local registry or the database.
    """

    issued = time.time() if now is None else now
    payload = {
        "uid": user_id,
        "provider": provider,
        "nonce": secrets.token_urlsafe(12),
        "exp": int(issued + ttl_seconds),
    }
    body = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{body}.{_signature(secret, body)}"


def verify_state(secret: str, token: str | None, provider: str, now: float | None = None) -> int:
    """Summary: Validate a state token and return the user id it names.

    Importance: Rejects forged, expired, or cross-provider callbacks before any exchange.
    Alternatives: Compare against a stored random state value.
    """

    if not token or "." not in token or not token.isascii():
        raise InvalidOAuthState("Missing or malformed OAuth state", provider=provider)
    body, signature = token.rsplit(".", 1)
    if not hmac.compare_digest(signature, _signature(secret, body)):
        raise InvalidOAuthState("OAuth state signature mismatch", provider=provider)
    try:
        payload = json.loads(_b64decode(body))
    except ValueError as exc:
        raise InvalidOAuthState("OAuth state payload unreadable", provider=provider) from exc
    if not isinstance(payload, dict):
        raise InvalidOAuthState("OAuth state payload unreadable", provider=provider)
    if payload.get("provider") != provider:
        raise InvalidOAuthState("OAuth state issued for a different provider", provider=provider)
    current = time.time() if now is None else now
    expires = payload.get("exp")
    if not isinstance(expires, int) or expires < current:
        raise InvalidOAuthState("OAuth state expired", provider=provider)
    user_id = payload.get("uid")
    if not isinstance(user_id, int):
        raise InvalidOAuthState("OAuth state has no user", provider=provider)
    return user_id


def build_authorization_url(config: AppConfig, provider: str, state: str) -> str:
    if provider == SLACK:
        return build_slack_auth_url(config, state)
    if provider == GOOGLE:
        return build_google_auth_url(config, state)
    raise ValueError(f"Unknown OAuth provider: {provider}. Expected one of {', '.join(PROVIDERS)}")


def build_slack_auth_url(config: AppConfig, state: str) -> str:
    """Summary: Build a Slack v2 authorization URL.

    Importance: Requests the chat, channel, and history scopes the gateway needs.
    Alternatives: Use the Slack SDK install provider.
    """

    _ensure_client_id(config.slack_client_id, SLACK)
    params = {
        "client_id": config.slack_client_id,
        "scope": ",".join(SLACK_SCOPES),
        "redirect_uri": config.slack_redirect_uri,
        "state": state,
    }
    return f"{SLACK_AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"


def build_google_auth_url(config: AppConfig, state: str) -> str:
    """Summary: Build a Google OAuth authorization URL.

    Importance: Requests offline access so a refresh token is issued.
    Alternatives: Use a different OAuth helper library.
    """

    _ensure_client_id(config.google_client_id, GOOGLE)
    params = {
        "client_id": config.google_client_id,
        "redirect_uri": config.google_redirect_uri,
        "response_type": "code",
        "access_type": "offline",
        "prompt": "consent",
        "scope": " ".join(GOOGLE_SCOPES),
        "state": state,
    }
    return f"{GOOGLE_AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"


def exchange_slack_code(
    config: AppConfig, code: str, transport: Transport = send_request
) -> SlackTokenResponse:
    """Summary: Exchange a Slack authorization code for a bot token.

    Importance: Slack reports rejections as HTTP 200 with ok=false.
    Alternatives: Use the Slack SDK oauth_v2_access helper.
    """

    _ensure_client_secret(config.slack_client_id, config.slack_client_secret, SLACK)
    response = _call_token_endpoint(
        transport,
        f"{config.slack_api_base_url.rstrip('/')}/oauth.v2.access",
        SLACK,
        {
            "client_id": config.slack_client_id,
            "client_secret": config.slack_client_secret,
            "code": code,
            "redirect_uri": config.slack_redirect_uri,
        },
        config.http_timeout_seconds,
    )
    payload = _token_payload(response, SLACK)
    if not response.ok or not payload.get("ok"):
        reason = payload.get("error") or f"HTTP {response.status}"
        raise TokenExchangeFailed(f"Slack rejected the authorization code: {reason}", provider=SLACK)
    return SlackTokenResponse.from_response(payload)


def exchange_google_code(
    config: AppConfig, code: str, transport: Transport = send_request
) -> GoogleTokenResponse:
    """Summary: Exchange a Google authorization code for access and refresh tokens."""

    _ensure_client_secret(config.google_client_id, config.google_client_secret, GOOGLE)
    response = _call_token_endpoint(
        transport,
        config.google_token_url,
        GOOGLE,
        {
            "client_id": config.google_client_id,
            "client_secret": config.google_client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": config.google_redirect_uri,
        },
        config.http_timeout_seconds,
    )
    payload = _token_payload(response, GOOGLE)
    if not response.ok:
        raise TokenExchangeFailed(
            f"Google rejected the authorization code: {_google_reason(payload, response.status)}",
            provider=GOOGLE,
        )
    return GoogleTokenResponse.from_response(payload)


def refresh_google_token(
    config: AppConfig, refresh_token: str, transport: Transport = send_request
) -> GoogleTokenResponse:
    """Summary: Obtain a new Google access token from a refresh token.

    Importance: Keeps long-lived Google connections usable without re-consent.
    Alternatives: Force the user through the consent screen on expiry.
    """

    _ensure_client_secret(config.google_client_id, config.google_client_secret, GOOGLE)
    response = _call_token_endpoint(
        transport,
        config.google_token_url,
        GOOGLE,
        {
            "client_id": config.google_client_id,
            "client_secret": config.google_client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        },
        config.http_timeout_seconds,
    )
    payload = _token_payload(response, GOOGLE)
    if not response.ok:
        logger.warning("Google refresh rejected with HTTP %s.", response.status)
        raise TokenExchangeFailed(
            f"Google rejected the refresh token: {_google_reason(payload, response.status)}",
            provider=GOOGLE,
        )
    return GoogleTokenResponse.from_response(payload)


def revoke_google_token(config: AppConfig, token: str, transport: Transport = send_request) -> None:
    response = transport(
        "POST",
        config.google_revoke_url,
        provider=GOOGLE,
        form={"token": token},
        timeout=config.http_timeout_seconds,
    )
    if not response.ok:
        raise ProviderApiError(GOOGLE, str(response.status), "Token revocation rejected")


def _call_token_endpoint(
    transport: Transport, url: str, provider: str, form: dict[str, str], timeout: float
):
    try:
        return transport("POST", url, provider=provider, form=form, timeout=timeout)
    except ProviderApiError as exc:
        raise TokenExchangeFailed(f"Token endpoint unreachable: {exc.detail}", provider=provider) from exc


def _token_payload(response, provider: str) -> dict[str, Any]:
    try:
        return decode_json(response, provider)
    except ProviderApiError as exc:
        raise TokenExchangeFailed("Token endpoint returned an unreadable body", provider=provider) from exc


def _google_reason(payload: dict[str, Any], status: int) -> str:
    return str(payload.get("error_description") or payload.get("error") or f"HTTP {status}")


def _ensure_client_id(client_id: str, provider: str) -> None:
    if not client_id:
        raise ConfigurationError(f"Missing OAuth client id for {provider}", provider=provider)


def _ensure_client_secret(client_id: str, client_secret: str, provider: str) -> None:
    """Summary: Validate that OAuth credentials exist.

    Importance: Prevents confusing token exchange errors when credentials are missing.
    Alternatives: Allow requests to fail at the provider endpoint.
    """

    if not client_id or not client_secret:
        raise ConfigurationError(f"Missing OAuth client credentials for {provider}", provider=provider)


def _signature(secret: str, body: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    try:
        return base64.urlsafe_b64decode((text + padding).encode("ascii"))
    except (ValueError, UnicodeEncodeError) as exc:
        raise ValueError("invalid base64 payload") from exc
