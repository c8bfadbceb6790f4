"""Summary: Application factory wiring core services.

Importance: Centralizes dependency creation for the CLI and API layers.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from omnialink.ai import AiProvider, AiProviderFactory, ResponseGenerator
from omnialink.calendar import GoogleCalendarGateway
from omnialink.config import AppConfig
from omnialink.errors import UserNotFound
from omnialink.gmail import GmailGateway
from omnialink.http import Transport, send_request
from omnialink.models import User
from omnialink.services import (
    CalendarSyncService,
    CoachService,
    ConnectionService,
    MessagingService,
    ResourceSuggestionService,
    SummarizationService,
)
from omnialink.slack import SlackGateway
from omnialink.storage.sqlite_store import SqliteStore
from omnialink.token_codec import SecretCodec


@dataclass(frozen=True)
class AppContext:
    """Summary: Shared application context for building user services.

    Importance: Reuses storage, gateways, and the AI generator across requests.
    Alternatives: Rebuild dependencies for every request.
    """

    store: SqliteStore
    config: AppConfig
    connections: ConnectionService
    slack: SlackGateway
    gmail: GmailGateway
    calendar: GoogleCalendarGateway
    generator: ResponseGenerator
    default_user_id: int

    def services_for_user(self, user_id: int) -> "AppServices":
        """Summary: Build user-scoped services from shared context.

        Importance: Each service re-reads that user's connections on every call.
        Alternatives: Pass the user id into every service method.
        """

        user = self.store.get_user(user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")
        return AppServices(
            connections=self.connections,
            messaging=MessagingService(
                connections=self.connections, slack=self.slack, gmail=self.gmail, user_id=user_id
            ),
            summaries=SummarizationService(
                connections=self.connections,
                slack=self.slack,
                gmail=self.gmail,
                generator=self.generator,
                user_id=user_id,
                user_name=user.display_name,
            ),
            calendar_sync=CalendarSyncService(
                connections=self.connections,
                calendar=self.calendar,
                user_id=user_id,
                time_zone=self.config.default_time_zone,
            ),
            resources=ResourceSuggestionService(generator=self.generator),
            coach=CoachService(generator=self.generator),
            store=self.store,
            user_id=user_id,
        )


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of user-scoped services for OmniaLink.

    Importance: Simplifies passing dependencies to the CLI and API layers.
    Alternatives: Use a dependency injection container.
    """

    connections: ConnectionService
    messaging: MessagingService
    summaries: SummarizationService
    calendar_sync: CalendarSyncService
    resources: ResourceSuggestionService
    coach: CoachService
    store: SqliteStore
    user_id: int


def build_context(
    config: AppConfig,
    transport: Transport = send_request,
    ai_provider: AiProvider | None = None,
) -> AppContext:
    """Summary: Build shared context for user-scoped services.

    Importance: One place decides which transport and AI provider every client uses.
    Alternatives: Construct dependencies separately per request.
    """

    store = SqliteStore(config.db_path, SecretCodec(config.token_secret))
    store.initialize()
    default_user_id = store.ensure_user(
        User(display_name=config.default_user_name, email=config.default_user_email)
    )
    provider = ai_provider or AiProviderFactory(config, transport).build()
    timeout = config.http_timeout_seconds
    return AppContext(
        store=store,
        config=config,
        connections=ConnectionService(store=store, config=config, transport=transport),
        slack=SlackGateway(config.slack_api_base_url, transport, timeout),
        gmail=GmailGateway(config.gmail_api_base_url, transport, timeout),
        calendar=GoogleCalendarGateway(config.google_calendar_base_url, transport, timeout),
        generator=ResponseGenerator(provider, api_key_configured=config.ai_configured),
        default_user_id=default_user_id,
    )


def build_services(config: AppConfig) -> AppServices:
    """Summary: Build services for the default user from configuration."""

    context = build_context(config)
    return context.services_for_user(context.default_user_id)
