"""Summary: Domain model dataclasses for OmniaLink.

Importance: Defines the shapes shared by gateways, services, and storage.
Alternatives: Pass provider JSON dictionaries between layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


SLACK = "slack"
GOOGLE = "google"
PROVIDERS = (SLACK, GOOGLE)

RESOURCE_TYPES = ("article", "video", "course", "book", "podcast", "tool", "other")
RESOURCE_CATEGORIES = (
    "programming",
    "marketing",
    "finance",
    "design",
    "self-improvement",
    "other",
)
RESOURCE_DIFFICULTIES = ("beginner", "intermediate", "advanced", "expert")
FALLBACK_ENUM_VALUE = "other"
AI_SUGGESTED = "AI_suggested"


@dataclass(frozen=True)
class User:
    """Summary: Represents an application user that owns connections.

    Importance: Resolves OAuth state tokens back to an owner.
    Alternatives: Trust the user id embedded in the state without lookup.
    """

    display_name: str
    email: str


@dataclass(frozen=True)
class ProviderConnection:
    """Summary: Stored credentials and metadata for one user and one provider.

    Importance: The only durable state this layer owns.
    Alternatives: Keep provider tokens on the user record itself.
    """

    user_id: int
    provider: str
    access_token: str | None
    refresh_token: str | None
    scope: str
    account_id: str
    connected_at: datetime
    team_id: str | None = None
    bot_user_id: str | None = None
    authed_user_id: str | None = None
    expires_at: datetime | None = None
    last_sync: datetime | None = None

    @property
    def is_connected(self) -> bool:
        return bool(self.access_token)


@dataclass(frozen=True)
class ConnectionResult:
    """Summary: Outcome of a completed OAuth callback."""

    provider: str
    user_id: int
    account_id: str
    scope: str


@dataclass(frozen=True)
class Channel:
    """Summary: An addressable Slack destination.

    Importance: Lets callers choose where to post or what to summarize.
    Alternatives: Return raw conversations.list payloads.
    """

    id: str
    name: str
    kind: str
    is_member: bool
    is_archived: bool
    topic: str | None = None


@dataclass(frozen=True)
class SendResult:
    """Summary: Acknowledgement of a posted message."""

    channel: str
    ts: str
    ok: bool = True


@dataclass(frozen=True)
class ExternalMessage:
    """Summary: A content item fetched from a provider history.

    Importance: Feeds summarization without being persisted.
    Alternatives: Store fetched messages before summarizing them.
    """

    external_id: str
    text: str
    author_id: str
    timestamp: datetime
    subject: str | None = None


@dataclass(frozen=True)
class AppEvent:
    """Summary: An application calendar entry handed over for pushing to a provider."""

    id: str
    title: str
    start: datetime
    end: datetime
    description: str | None = None
    location: str | None = None


@dataclass(frozen=True)
class ExternalEvent:
    """Summary: A calendar event read from a provider.

    Importance: Carries the provider id and pushed origin id for reconciliation by callers.
    Alternatives: Dedupe inside the gateway with an invented key.
    """

    external_id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    description: str | None = None
    location: str | None = None
    attendees: list[str] = field(default_factory=list)
    html_link: str | None = None
    origin_event_id: str | None = None


@dataclass(frozen=True)
class GenerationRequest:
    """Summary: Input for AI learning-resource suggestions."""

    topic: str
    type_hint: str = "any"
    difficulty: str = "beginner"


@dataclass(frozen=True)
class GeneratedResource:
    """Summary: A schema-valid learning resource suggested by the AI.

    Importance: Marks the boundary between untrusted model output and internal data.
    Alternatives: Hand raw model JSON straight to callers.
    """

    title: str
    description: str
    url: str
    type: str
    category: str
    source: str = AI_SUGGESTED
