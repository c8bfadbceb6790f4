"""Summary: Core application services for OmniaLink.

Importance: Orchestrates OAuth connections, provider calls, summaries, and AI suggestions.
Alternatives: Build a full service layer with dependency injection framework.
"""

from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence

from omnialink.ai import ResponseGenerator
from omnialink.calendar import GoogleCalendarGateway
from omnialink.config import AppConfig
from omnialink.errors import IntegrationError, NotConnected, ProviderDenied, TokenExchangeFailed, UserNotFound
from omnialink.gmail import INBOX, GmailGateway
from omnialink.http import Transport, send_request
from omnialink.models import (
    GOOGLE,
    PROVIDERS,
    RESOURCE_DIFFICULTIES,
    RESOURCE_TYPES,
    SLACK,
    AppEvent,
    Channel,
    ConnectionResult,
    ExternalEvent,
    ExternalMessage,
    GeneratedResource,
    GenerationRequest,
    ProviderConnection,
    SendResult,
)
from omnialink.oauth import (
    build_authorization_url,
    exchange_google_code,
    exchange_slack_code,
    refresh_google_token,
    revoke_google_token,
    sign_state,
    verify_state,
)
from omnialink.parsing import DEFAULT_URL, parse_resource_list
from omnialink.slack import SlackGateway
from omnialink.storage.sqlite_store import SqliteStore


logger = logging.getLogger(__name__)

NOTHING_TO_SUMMARIZE = "No recent messages to summarize."
REFRESH_MARGIN = timedelta(seconds=60)
MAX_SUGGESTED_RESOURCES = 5
MIN_TOPIC_LENGTH = 10
MIN_DRAFT_INSTRUCTION_LENGTH = 20

SUMMARY_ROLE = "You are a helpful assistant that excels at summarizing text concisely and accurately."
DRAFT_ROLE = "You are a helpful assistant that drafts clear, concise, and appropriate messages."
PRODUCTIVITY_ROLE = (
    "You are an AI productivity coach providing intelligent, empathetic, and actionable advice."
)
GOAL_ROLE = (
    "You are an AI personal growth coach providing intelligent, empathetic, and actionable "
    "advice for achieving goals."
)

MOTIVATIONAL_TIPS = (
    "The best way to predict the future is to create it.",
    "Your only limit is your mind.",
    "Success is not final, failure is not fatal: it is the courage to continue that counts.",
    "Believe you can and you're halfway there.",
    "The expert in anything was once a beginner.",
    "Don't watch the clock; do what it does. Keep going.",
    "Small daily improvements are the key to staggering long-term results.",
    "Start where you are. Use what you have. Do what you can.",
    "The mind is everything. What you think you become.",
    "The future belongs to those who believe in the beauty of their dreams.",
)

RESOURCE_SCHEMA_HINT = {
    "title": "Resource title",
    "description": "One or two sentences on why it helps",
    "url": "https://example.com/resource",
    "type": "article | video | course | book | podcast | tool | other",
    "category": "programming | marketing | finance | design | self-improvement | other",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConnectionService:
    """Summary: Manages the OAuth lifecycle of provider connections.

    Importance: The only writer of ProviderConnection records.
    Alternatives: Let each provider client own its token storage.
    """

    store: SqliteStore
    config: AppConfig
    transport: Transport = send_request

    def build_authorization_url(self, user_id: int, provider: str) -> str:
        """Summary: Build the consent URL for a user with a freshly signed state.

        Importance: The state binds the eventual callback to this user.
        Alternatives: Pass the raw user id as state.
        """

        _ensure_provider(provider)
        if not self.store.get_user(user_id):
            raise UserNotFound(f"User {user_id} not found", provider=provider)
        state = sign_state(
            self.config.token_secret, user_id, provider, self.config.oauth_state_ttl_seconds
        )
        return build_authorization_url(self.config, provider, state)

    def handle_callback(
        self,
        provider: str,
        code: str | None,
        state: str | None,
        provider_error: str | None = None,
    ) -> ConnectionResult:
        """Summary: Complete an OAuth flow and persist the resulting connection.

        Importance: Denials, missing codes, and bad states stop before the single token exchange.
        Alternatives: Exchange first and validate the state afterwards.
        """

        _ensure_provider(provider)
        if provider_error:
            raise ProviderDenied(f"{provider} authorization denied: {provider_error}", provider=provider)
        if not code:
            raise TokenExchangeFailed("Authorization code missing from callback", provider=provider)
        user_id = verify_state(self.config.token_secret, state, provider)
        if not self.store.get_user(user_id):
            raise UserNotFound(f"User {user_id} not found", provider=provider)
        now = _utcnow()
        if provider == SLACK:
            slack_token = exchange_slack_code(self.config, code, self.transport)
            connection = ProviderConnection(
                user_id=user_id,
                provider=SLACK,
                access_token=slack_token.access_token,
                refresh_token=None,
                scope=slack_token.scope,
                account_id=slack_token.team_id or slack_token.authed_user_id or "",
                connected_at=now,
                team_id=slack_token.team_id,
                bot_user_id=slack_token.bot_user_id,
                authed_user_id=slack_token.authed_user_id,
                last_sync=now,
            )
        else:
            google_token = exchange_google_code(self.config, code, self.transport)
            existing = self.store.get_connection(user_id, GOOGLE)
            connection = ProviderConnection(
                user_id=user_id,
                provider=GOOGLE,
                access_token=google_token.access_token,
                refresh_token=google_token.refresh_token
                or (existing.refresh_token if existing else None),
                scope=google_token.scope,
                account_id=existing.account_id if existing else "primary",
                connected_at=now,
                expires_at=google_token.expires_at,
                last_sync=now,
            )
        self.store.upsert_connection(connection)
        logger.info("Connected %s for user %s.", provider, user_id)
        return ConnectionResult(
            provider=provider,
            user_id=user_id,
            account_id=connection.account_id,
            scope=connection.scope,
        )

    def disconnect(self, user_id: int, provider: str) -> None:
        """Summary: Remove a connection, revoking Google tokens on a best-effort basis.

        Importance: A failed revocation never keeps credentials stored.
        Alternatives: Fail the disconnect when revocation fails.
        """

        _ensure_provider(provider)
        connection = self.store.get_connection(user_id, provider)
        if connection is None:
            raise NotConnected(f"{provider} is not connected", provider=provider)
        if provider == GOOGLE:
            token = connection.refresh_token or connection.access_token
            if token:
                try:
                    revoke_google_token(self.config, token, self.transport)
                except IntegrationError as exc:
                    logger.warning("Google token revocation failed for user %s: %s", user_id, exc)
        self.store.delete_connection(user_id, provider)
        logger.info("Disconnected %s for user %s.", provider, user_id)

    def connection_status(self, user_id: int) -> dict[str, dict[str, Any]]:
        status: dict[str, dict[str, Any]] = {}
        for provider in PROVIDERS:
            connection = self.store.get_connection(user_id, provider)
            if connection is None:
                status[provider] = {"connected": False}
                continue
            status[provider] = {
                "connected": connection.is_connected,
                "scope": connection.scope,
                "account_id": connection.account_id,
                "connected_at": connection.connected_at.isoformat(),
                "last_sync": connection.last_sync.isoformat() if connection.last_sync else None,
            }
        return status

    def active_connection(self, user_id: int, provider: str) -> ProviderConnection | None:
        """Summary: Re-read a connection, refreshing a Google token that is about to expire.

        Importance: Every gateway call sees the latest stored state, including disconnects.
        Alternatives: Cache the connection for the length of a request.
        """

        connection = self.store.get_connection(user_id, provider)
        if connection is None or provider != GOOGLE:
            return connection
        if not connection.refresh_token or not self._expires_soon(connection.expires_at):
            return connection
        token = refresh_google_token(self.config, connection.refresh_token, self.transport)
        refreshed = replace(
            connection,
            access_token=token.access_token,
            refresh_token=token.refresh_token or connection.refresh_token,
            expires_at=token.expires_at,
        )
        updated = self.store.update_tokens(
            user_id, GOOGLE, refreshed.access_token, refreshed.refresh_token, refreshed.expires_at
        )
        if not updated:
            raise NotConnected("google was disconnected during token refresh", provider=GOOGLE)
        logger.info("Refreshed Google access token for user %s.", user_id)
        return refreshed

    def _expires_soon(self, expires_at: datetime | None) -> bool:
        if expires_at is None:
            return False
        return expires_at <= _utcnow() + REFRESH_MARGIN


@dataclass(frozen=True)
class MessagingService:
    """Summary: Sends Slack messages and Gmail drafts for one user.

    Importance: Reads the connection right before each provider call.
    Alternatives: Call gateways directly from the API layer.
    """

    connections: ConnectionService
    slack: SlackGateway
    gmail: GmailGateway
    user_id: int

    def list_channels(self) -> list[Channel]:
        return self.slack.list_channels(self.connections.active_connection(self.user_id, SLACK))

    def send_slack_message(
        self, destination: str, text: str, options: dict[str, Any] | None = None
    ) -> SendResult:
        if not text.strip():
            raise ValueError("Message text must not be empty")
        connection = self.connections.active_connection(self.user_id, SLACK)
        return self.slack.send_message(connection, destination, text, options)

    def send_email(self, to: str, subject: str, body: str, in_reply_to: str | None = None) -> str:
        if not to.strip():
            raise ValueError("Recipient must not be empty")
        connection = self.connections.active_connection(self.user_id, GOOGLE)
        return self.gmail.send_email(connection, to, subject, body, in_reply_to)


@dataclass(frozen=True)
class SummarizationService:
    """Summary: Summarizes Slack channels and the Gmail inbox from the user's perspective.

    Importance: Skips the AI call entirely when there is nothing to summarize.
    Alternatives: Always call the model and let it report emptiness.
    """

    connections: ConnectionService
    slack: SlackGateway
    gmail: GmailGateway
    generator: ResponseGenerator
    user_id: int
    user_name: str

    def summarize_channel(self, destination: str, count: int = 50) -> str:
        connection = self.connections.active_connection(self.user_id, SLACK)
        messages = self.slack.fetch_history(connection, destination, count)
        instruction = (
            f"Summarize the following Slack channel discussion from {self.user_name}'s "
            "perspective, identifying key topics, decisions, and action items:"
        )
        return self._summarize(messages, instruction, _render_chat_line)

    def summarize_inbox(self, max_results: int = 10) -> str:
        connection = self.connections.active_connection(self.user_id, GOOGLE)
        messages = self.gmail.fetch_history(connection, INBOX, max_results)
        instruction = (
            f"Summarize the following emails from {self.user_name}'s perspective, focusing on "
            "key information and any implied action items:"
        )
        summary = self._summarize(messages, instruction, _render_email_line)
        if messages:
            self.connections.store.touch_last_sync(self.user_id, GOOGLE)
        return summary

    def _summarize(
        self,
        messages: Sequence[ExternalMessage],
        instruction: str,
        render: Callable[[ExternalMessage], str],
    ) -> str:
        """Summary: Order items oldest first, one per line, and ask the generator for a summary.

        Importance: Nothing fetched is stored; an empty transcript short-circuits.
        Alternatives: Summarize each item separately.
        """

        items = sorted(
            (message for message in messages if message.text.strip()),
            key=lambda message: message.timestamp,
        )
        transcript = "\n".join(render(message) for message in items).strip()
        if not transcript:
            return NOTHING_TO_SUMMARIZE
        prompt = f"{instruction}\n\nText to summarize:\n{transcript}"
        return self.generator.complete(SUMMARY_ROLE, prompt, 150, 0.5)


@dataclass(frozen=True)
class CalendarSyncService:
    """Summary: Pushes and pulls Google Calendar events for one user."""

    connections: ConnectionService
    calendar: GoogleCalendarGateway
    user_id: int
    time_zone: str

    def sync_to_google(self, events: Iterable[AppEvent], calendar_id: str = "primary") -> int:
        connection = self.connections.active_connection(self.user_id, GOOGLE)
        synced = self.calendar.push_events(connection, list(events), calendar_id, self.time_zone)
        self.connections.store.touch_last_sync(self.user_id, GOOGLE)
        return synced

    def sync_from_google(
        self, time_min: datetime | None = None, calendar_id: str = "primary"
    ) -> list[ExternalEvent]:
        connection = self.connections.active_connection(self.user_id, GOOGLE)
        events = self.calendar.pull_events(connection, time_min or _utcnow(), calendar_id)
        self.connections.store.touch_last_sync(self.user_id, GOOGLE)
        return events


@dataclass(frozen=True)
class ResourceSuggestionService:
    """Summary: Generates learning-resource suggestions for a topic.

    Importance: Returns at most five schema-valid resources with unique URLs.
    Alternatives: Return every record the model produced.
    """

    generator: ResponseGenerator

    def generate(self, request: GenerationRequest) -> list[GeneratedResource]:
        topic = request.topic.strip()
        if len(topic) < MIN_TOPIC_LENGTH:
            raise ValueError(f"Topic must be at least {MIN_TOPIC_LENGTH} characters")
        type_hint = request.type_hint.strip().lower() or "any"
        if type_hint != "any" and type_hint not in RESOURCE_TYPES:
            raise ValueError(f"Unsupported resource type: {request.type_hint}")
        difficulty = request.difficulty.strip().lower()
        if difficulty not in RESOURCE_DIFFICULTIES:
            raise ValueError(f"Unsupported difficulty: {request.difficulty}")
        kind = "learning resources" if type_hint == "any" else f"{type_hint} resources"
        instruction = (
            f"Suggest up to {MAX_SUGGESTED_RESOURCES} {kind} for a {difficulty} learner "
            f'studying "{topic}". Prefer well-known, currently available resources with real URLs.'
        )
        raw = self.generator.generate_structured(instruction, RESOURCE_SCHEMA_HINT)
        resources = _dedupe_resources(parse_resource_list(raw))[:MAX_SUGGESTED_RESOURCES]
        logger.info("Generated %s learning resources.", len(resources))
        return resources


@dataclass(frozen=True)
class CoachService:
    """Summary: Drafts messages and gives coaching advice via the AI generator.

    Importance: Shares the guarded generator with summaries and suggestions.
    Alternatives: Call the model directly from the API layer.
    """

    generator: ResponseGenerator
    chooser: Callable[[Sequence[str]], str] = random.choice

    def draft_message(
        self,
        instruction: str,
        context: str = "",
        tone: str = "professional",
        format: str = "email",
    ) -> str:
        if len(instruction.strip()) < MIN_DRAFT_INSTRUCTION_LENGTH:
            raise ValueError(
                "Please provide a detailed instruction "
                f"(at least {MIN_DRAFT_INSTRUCTION_LENGTH} characters) for drafting the message."
            )
        prompt = f'Draft a {tone} {format} based on the following instruction: "{instruction.strip()}".'
        if context.strip():
            prompt += f' Consider this additional context: "{context.strip()}".'
        prompt += f" Ensure the draft is in a {tone} tone and formatted as a {format}."
        return self.generator.complete(DRAFT_ROLE, prompt, 300, 0.7)

    def productivity_recommendation(self, summary: Mapping[str, Any]) -> str:
        _ensure_mapping(summary, "User activity summary")
        prompt = (
            "Based on the following user activity summary, provide actionable and encouraging "
            "productivity recommendations to help them optimize their day and achieve more. "
            "Focus on improvements, time management, and habit formation.\n\n"
            f"User Activity Summary:\n{json.dumps(dict(summary), indent=2, default=str)}\n\n"
            "Productivity Recommendations:"
        )
        return self.generator.complete(PRODUCTIVITY_ROLE, prompt, 250, 0.7)

    def goal_recommendation(self, goal: Mapping[str, Any]) -> str:
        _ensure_mapping(goal, "Goal data")
        prompt = (
            "Based on the following goal details, provide specific and actionable advice to help "
            "the user achieve their goal. Focus on breaking it down, staying motivated, and "
            "overcoming challenges.\n\n"
            f"Goal Details:\n{json.dumps(dict(goal), indent=2, default=str)}\n\n"
            "Actionable Advice for Goal Achievement:"
        )
        return self.generator.complete(GOAL_ROLE, prompt, 250, 0.7)

    def motivational_tip(self) -> str:
        return self.chooser(MOTIVATIONAL_TIPS)


def _dedupe_resources(resources: Iterable[GeneratedResource]) -> list[GeneratedResource]:
    """Summary: Keep the first resource per URL; placeholder URLs are keyed by title instead."""

    seen: set[tuple[str, str]] = set()
    unique: list[GeneratedResource] = []
    for resource in resources:
        key = ("title", resource.title.lower()) if resource.url == DEFAULT_URL else ("url", resource.url)
        if key in seen:
            continue
        seen.add(key)
        unique.append(resource)
    return unique


def _render_chat_line(message: ExternalMessage) -> str:
    return message.text.strip().replace("\n", " ")


def _render_email_line(message: ExternalMessage) -> str:
    body = message.text.strip().replace("\n", " ")
    return f"From {message.author_id} - {message.subject or 'No Subject'}: {body}"


def _ensure_provider(provider: str) -> None:
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown provider: {provider}. Expected one of {', '.join(PROVIDERS)}")


def _ensure_mapping(value: Any, label: str) -> None:
    if not isinstance(value, Mapping) or not value:
        raise ValueError(f"{label} is required and must be a non-empty object")
