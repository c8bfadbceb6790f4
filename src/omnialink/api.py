"""Summary: FastAPI application for OmniaLink.

Importance: Exposes HTTP endpoints for OAuth flows, provider actions, and AI features.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
import urllib.parse
from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

from omnialink.ai import AiProvider
from omnialink.app import AppServices, build_context
from omnialink.config import AppConfig
from omnialink.errors import (
    ConfigurationError,
    GenerationFailed,
    IntegrationError,
    MalformedResponse,
    NotConnected,
    ProviderApiError,
    ProviderDenied,
    ProviderUnavailable,
    TokenExchangeFailed,
    UnsupportedOperation,
    UserNotFound,
)
from omnialink.http import Transport, send_request
from omnialink.models import PROVIDERS, AppEvent, GenerationRequest


logger = logging.getLogger(__name__)

ERROR_STATUS: tuple[tuple[type[IntegrationError], int], ...] = (
    (UserNotFound, 404),
    (NotConnected, 409),
    (ProviderDenied, 403),
    (TokenExchangeFailed, 400),
    (ProviderApiError, 502),
    (ProviderUnavailable, 503),
    (GenerationFailed, 502),
    (MalformedResponse, 502),
    (UnsupportedOperation, 400),
    (ConfigurationError, 500),
)


class SendMessageRequest(BaseModel):
    """Summary: Request payload for posting a Slack message.

    Importance: Keeps destination and text explicit for API clients.
    Alternatives: Resolve channel names on the server.
    """

    channel: str = Field(min_length=1)
    text: str = Field(min_length=1)
    options: dict[str, Any] = Field(default_factory=dict)


class SummarizeChannelRequest(BaseModel):
    """Summary: Request payload for Slack channel summaries."""

    channel: str = Field(min_length=1)
    count: int = Field(default=50, ge=1, le=100)


class SummarizeInboxRequest(BaseModel):
    max_results: int = Field(default=10, ge=1, le=100)


class SendDraftRequest(BaseModel):
    """Summary: Request payload for sending a Gmail message.

    Importance: Supports replies through an optional original message id.
    Alternatives: Create Gmail drafts instead of sending directly.
    """

    to: str = Field(min_length=3)
    subject: str
    body: str
    in_reply_to: str | None = None


class CalendarEventPayload(BaseModel):
    id: str
    title: str
    start: datetime
    end: datetime
    description: str | None = None
    location: str | None = None


class SyncToGoogleRequest(BaseModel):
    """Summary: Request payload for pushing application events to Google Calendar."""

    events: list[CalendarEventPayload]
    calendar_id: str = "primary"


class SyncFromGoogleRequest(BaseModel):
    time_min: datetime | None = None
    calendar_id: str = "primary"


class ResourceGenerateRequest(BaseModel):
    """Summary: Request payload for AI learning-resource suggestions.

    Importance: Mirrors the topic, type hint, and difficulty chosen by the user.
    Alternatives: Accept a single free-text prompt.
    """

    topic: str
    type_hint: str = Field(default="any", alias="typeHint")
    difficulty: str = "beginner"

    model_config = {"populate_by_name": True}


class DraftMessageRequest(BaseModel):
    instruction: str
    context: str = ""
    tone: str = "professional"
    format: str = "email"


class ProductivityRequest(BaseModel):
    summary: dict[str, Any]


class GoalRequest(BaseModel):
    goal: dict[str, Any]


def status_for(error: IntegrationError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def create_app(
    config: AppConfig,
    transport: Transport = send_request,
    ai_provider: AiProvider | None = None,
) -> FastAPI:
    """Summary: Create a FastAPI app wired to OmniaLink services.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="OmniaLink API", version="0.1.0")
    context = build_context(config, transport=transport, ai_provider=ai_provider)

    @app.exception_handler(IntegrationError)
    def integration_error(request: Request, exc: IntegrationError) -> JSONResponse:
        """Summary: Map typed integration failures onto HTTP responses.

        Importance: Tells API clients which external system failed and why.
        Alternatives: Catch errors inside every route.
        """

        status = status_for(exc)
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        content: dict[str, Any] = {
            "detail": exc.message,
            "error": type(exc).__name__,
            "provider": exc.provider,
        }
        if isinstance(exc, ProviderApiError):
            content["code"] = exc.code
        return JSONResponse(status_code=status, content=content)

    @app.exception_handler(ValueError)
    def value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for local and private deployments.
        Alternatives: Use OAuth or session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    def user_services(
        x_user_id: int | None = Header(default=None),
        _: None = Depends(require_api_key),
    ) -> AppServices:
        return context.services_for_user(x_user_id or context.default_user_id)

    def known_provider(provider: str) -> str:
        if provider not in PROVIDERS:
            raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")
        return provider

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/integrations/status")
    def integration_status(services: AppServices = Depends(user_services)) -> dict[str, Any]:
        return services.connections.connection_status(services.user_id)

    @app.get("/integrations/{provider}/auth")
    def start_auth(
        provider_name: str = Depends(known_provider),
        services: AppServices = Depends(user_services),
    ) -> dict[str, str]:
        """Summary: Return the provider consent URL for the calling user.

        Importance: Starts the OAuth flow with a signed state bound to the user.
        Alternatives: Redirect the caller straight to the provider.
        """

        url = services.connections.build_authorization_url(services.user_id, provider_name)
        return {"auth_url": url}

    @app.get("/integrations/{provider}/callback")
    def oauth_callback(
        provider_name: str = Depends(known_provider),
        code: str | None = None,
        state: str | None = None,
        error: str | None = None,
    ) -> RedirectResponse:
        """Summary: Complete the OAuth flow and redirect back to the frontend.

        Importance: Reports success or failure without echoing tokens.
        Alternatives: Render an HTML confirmation page.
        """

        try:
            result = context.connections.handle_callback(provider_name, code, state, error)
        except IntegrationError as exc:
            logger.warning("OAuth callback for %s failed: %s", provider_name, exc.message)
            return RedirectResponse(_frontend_url(config, "error", exc.message), status_code=302)
        message = f"{provider_name} connected successfully"
        logger.info("OAuth callback for %s completed for user %s.", provider_name, result.user_id)
        return RedirectResponse(_frontend_url(config, "success", message), status_code=302)

    @app.post("/integrations/{provider}/disconnect")
    def disconnect(
        provider_name: str = Depends(known_provider),
        services: AppServices = Depends(user_services),
    ) -> dict[str, str]:
        services.connections.disconnect(services.user_id, provider_name)
        return {"status": "disconnected", "provider": provider_name}

    @app.get("/integrations/slack/channels")
    def slack_channels(services: AppServices = Depends(user_services)) -> list[dict[str, Any]]:
        return [asdict(channel) for channel in services.messaging.list_channels()]

    @app.post("/integrations/slack/send-message")
    def slack_send_message(
        payload: SendMessageRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, Any]:
        result = services.messaging.send_slack_message(payload.channel, payload.text, payload.options)
        return asdict(result)

    @app.post("/integrations/slack/summarize-channel")
    def slack_summarize_channel(
        payload: SummarizeChannelRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, str]:
        summary = services.summaries.summarize_channel(payload.channel, payload.count)
        return {"summary": summary}

    @app.post("/integrations/gmail/summarize-inbox")
    def gmail_summarize_inbox(
        payload: SummarizeInboxRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, str]:
        return {"summary": services.summaries.summarize_inbox(payload.max_results)}

    @app.post("/integrations/gmail/send-draft")
    def gmail_send_draft(
        payload: SendDraftRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, str]:
        message_id = services.messaging.send_email(
            payload.to, payload.subject, payload.body, payload.in_reply_to
        )
        return {"message_id": message_id}

    @app.post("/integrations/google-calendar/sync-to-google")
    def calendar_sync_to_google(
        payload: SyncToGoogleRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, int]:
        events = [AppEvent(**event.model_dump()) for event in payload.events]
        synced = services.calendar_sync.sync_to_google(events, payload.calendar_id)
        return {"synced_count": synced}

    @app.post("/integrations/google-calendar/sync-from-google")
    def calendar_sync_from_google(
        payload: SyncFromGoogleRequest, services: AppServices = Depends(user_services)
    ) -> list[dict[str, Any]]:
        events = services.calendar_sync.sync_from_google(payload.time_min, payload.calendar_id)
        return [_event_payload(event) for event in events]

    @app.post("/learning-resources/ai-generate")
    def generate_resources(
        payload: ResourceGenerateRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, Any]:
        request = GenerationRequest(
            topic=payload.topic, type_hint=payload.type_hint, difficulty=payload.difficulty
        )
        resources = services.resources.generate(request)
        return {"resources": [asdict(resource) for resource in resources]}

    @app.post("/coach/draft")
    def coach_draft(
        payload: DraftMessageRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, str]:
        draft = services.coach.draft_message(
            payload.instruction, payload.context, payload.tone, payload.format
        )
        return {"draft": draft}

    @app.post("/coach/productivity")
    def coach_productivity(
        payload: ProductivityRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, str]:
        return {"recommendation": services.coach.productivity_recommendation(payload.summary)}

    @app.post("/coach/goal")
    def coach_goal(
        payload: GoalRequest, services: AppServices = Depends(user_services)
    ) -> dict[str, str]:
        return {"recommendation": services.coach.goal_recommendation(payload.goal)}

    @app.get("/coach/motivational-tip")
    def coach_motivational_tip(services: AppServices = Depends(user_services)) -> dict[str, str]:
        return {"tip": services.coach.motivational_tip()}

    return app


def _frontend_url(config: AppConfig, status: str, message: str) -> str:
    query = urllib.parse.urlencode({"status": status, "message": message})
    separator = "&" if "?" in config.frontend_redirect_url else "?"
    return f"{config.frontend_redirect_url}{separator}{query}"


def _event_payload(event: Any) -> dict[str, Any]:
    payload = asdict(event)
    payload["start"] = event.start.isoformat()
    payload["end"] = event.end.isoformat()
    return payload


app = create_app(AppConfig.from_env())
