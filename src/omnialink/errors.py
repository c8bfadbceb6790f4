"""Summary: Error taxonomy for integration and AI workflows.

Importance: Lets callers tell which external system failed and why.
Alternatives: Raise RuntimeError with formatted messages everywhere.
"""

from __future__ import annotations


class IntegrationError(Exception):
    """Summary: Base class for every failure raised by this package.

    Importance: Gives the HTTP layer a single type to map onto responses.
    Alternatives: Map individual exception types at every call site.
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider


class UserNotFound(IntegrationError):
    """Summary: Raised when a user id or OAuth state does not resolve to a user."""


class InvalidOAuthState(UserNotFound):
    """Summary: Raised when an OAuth state token is forged, expired, or mismatched.

    Importance: Rejects callbacks before any token exchange is attempted.
    Alternatives: Keep a server-side registry of pending states.
    """


class NotConnected(IntegrationError):
    """Summary: Raised when no usable connection exists for a provider."""


class ProviderDenied(IntegrationError):
    """Summary: Raised when the provider reports an authorization error on callback."""


class TokenExchangeFailed(IntegrationError):
    """Summary: Raised when a provider rejects an authorization code or refresh token."""


class ProviderApiError(IntegrationError):
    """Summary: Raised on any non-successful provider API response.

    Importance: Carries the provider's own error code for caller decisions.
    Alternatives: Return error dictionaries alongside results.
    """

    def __init__(self, provider: str, code: str, message: str) -> None:
        super().__init__(f"{provider} API error ({code}): {message}", provider=provider)
        self.code = code
        self.detail = message


class ProviderUnavailable(IntegrationError):
    """Summary: Raised when the AI provider has no credential configured."""


class GenerationFailed(IntegrationError):
    """Summary: Raised when the AI provider errors or returns empty output."""


class MalformedResponse(IntegrationError):
    """Summary: Raised when AI output cannot be parsed into the expected structure."""


class UnsupportedOperation(IntegrationError):
    """Summary: Raised when a gateway does not implement the requested operation."""


class ConfigurationError(IntegrationError):
    """Summary: Raised when required client credentials are missing from configuration."""
