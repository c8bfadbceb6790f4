"""Summary: Application configuration for OmniaLink.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for providers, AI, and storage.

    Importance: Ensures all services derive settings from a single source of truth.
    Alternatives: Read environment variables lazily inside each client.
    """

    db_path: str
    ai_provider: str
    openai_api_key: str | None
    openai_model: str
    openai_base_url: str
    api_host: str
    api_port: int
    api_key: str
    default_user_name: str
    default_user_email: str
    token_secret: str
    slack_client_id: str
    slack_client_secret: str
    slack_redirect_uri: str
    slack_api_base_url: str
    google_client_id: str
    google_client_secret: str
    google_redirect_uri: str
    google_token_url: str
    google_revoke_url: str
    gmail_api_base_url: str
    google_calendar_base_url: str
    frontend_redirect_url: str
    default_time_zone: str
    http_timeout_seconds: float
    ai_timeout_seconds: float
    oauth_state_ttl_seconds: int

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            db_path=os.getenv("OMNIALINK_DB_PATH", defaults["db_path"]),
            ai_provider=os.getenv("OMNIALINK_AI_PROVIDER", defaults["ai_provider"]),
            openai_api_key=os.getenv("OPENAI_API_KEY") or defaults["openai_api_key"] or None,
            openai_model=os.getenv("OPENAI_MODEL", defaults["openai_model"]),
            openai_base_url=os.getenv("OPENAI_BASE_URL", defaults["openai_base_url"]),
            api_host=os.getenv("OMNIALINK_API_HOST", defaults["api_host"]),
            api_port=int(os.getenv("OMNIALINK_API_PORT", defaults["api_port"])),
            api_key=os.getenv("OMNIALINK_API_KEY", defaults["api_key"]),
            default_user_name=os.getenv(
                "OMNIALINK_DEFAULT_USER_NAME", defaults["default_user_name"]
            ),
            default_user_email=os.getenv(
                "OMNIALINK_DEFAULT_USER_EMAIL", defaults["default_user_email"]
            ),
            token_secret=os.getenv("OMNIALINK_TOKEN_SECRET", defaults["token_secret"]),
            slack_client_id=os.getenv("SLACK_CLIENT_ID", defaults["slack_client_id"]),
            slack_client_secret=os.getenv("SLACK_CLIENT_SECRET", defaults["slack_client_secret"]),
            slack_redirect_uri=os.getenv("SLACK_REDIRECT_URI", defaults["slack_redirect_uri"]),
            slack_api_base_url=os.getenv("SLACK_API_BASE_URL", defaults["slack_api_base_url"]),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID", defaults["google_client_id"]),
            google_client_secret=os.getenv(
                "GOOGLE_CLIENT_SECRET", defaults["google_client_secret"]
            ),
            google_redirect_uri=os.getenv("GOOGLE_REDIRECT_URI", defaults["google_redirect_uri"]),
            google_token_url=os.getenv("GOOGLE_TOKEN_URL", defaults["google_token_url"]),
            google_revoke_url=os.getenv("GOOGLE_REVOKE_URL", defaults["google_revoke_url"]),
            gmail_api_base_url=os.getenv("GMAIL_API_BASE_URL", defaults["gmail_api_base_url"]),
            google_calendar_base_url=os.getenv(
                "GOOGLE_CALENDAR_BASE_URL", defaults["google_calendar_base_url"]
            ),
            frontend_redirect_url=os.getenv(
                "OMNIALINK_FRONTEND_REDIRECT_URL", defaults["frontend_redirect_url"]
            ),
            default_time_zone=os.getenv("OMNIALINK_TIME_ZONE", defaults["default_time_zone"]),
            http_timeout_seconds=float(
                os.getenv("OMNIALINK_HTTP_TIMEOUT", defaults["http_timeout_seconds"])
            ),
            ai_timeout_seconds=float(os.getenv("OMNIALINK_AI_TIMEOUT", defaults["ai_timeout_seconds"])),
            oauth_state_ttl_seconds=int(
                os.getenv("OMNIALINK_OAUTH_STATE_TTL", defaults["oauth_state_ttl_seconds"])
            ),
        )

    @property
    def ai_configured(self) -> bool:
        """Summary: Report whether the selected AI provider has a usable credential.

        Importance: Lets the generator fail fast before any network call.
        Alternatives: Let the upstream API reject unauthenticated requests.
        """

        if self.ai_provider == "openai":
            return bool(self.openai_api_key)
        return self.ai_provider == "mock"


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps client secrets out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))
