"""Summary: AI provider abstraction and the response generator.

Importance: Centralizes LLM access so summaries, drafts, and structured suggestions share one guarded path.
Alternatives: Call provider SDKs directly in each service.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from omnialink.config import AppConfig
from omnialink.errors import GenerationFailed, IntegrationError, ProviderUnavailable
from omnialink.http import Transport, decode_json, send_request


logger = logging.getLogger(__name__)

AI_PROVIDER_NAME = "ai"
STRUCTURED_ROLE = (
    "You are a precise assistant that only answers with a single JSON object "
    "and never adds commentary."
)


class AiProvider(ABC):
    """Summary: Abstract interface for chat-style text generation.

    Importance: Allows switching between cloud and mock models without refactors.
    Alternatives: Use a single vendor SDK and accept lock-in risk.
    """

    @abstractmethod
    def generate(self, system_role: str, prompt: str, max_tokens: int, temperature: float) -> str:
        """Summary: Return raw model text for one system/user exchange."""


class MockAiProvider(AiProvider):
    """Summary: Deterministic AI provider for local runs and tests.

    Importance: Enables offline workflows and repeatable tests.
    Alternatives: Use a small local LLM for all development tasks.
    """

    def generate(self, system_role: str, prompt: str, max_tokens: int, temperature: float) -> str:
        if system_role == STRUCTURED_ROLE:
            return json.dumps(
                {
                    "resources": [
                        {
                            "title": "Mock resource",
                            "description": prompt.splitlines()[0][:200],
                            "url": "https://example.com/mock-resource",
                            "type": "article",
                            "category": "other",
                        }
                    ]
                }
            )
        return f"[mock] {prompt[:240]}"


class OpenAiProvider(AiProvider):
    """Summary: AI provider using an OpenAI-compatible chat completions API.

    Importance: Produces the summaries, drafts, and suggestions when configured.
    Alternatives: Use the responses API or a different provider.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str,
        transport: Transport = send_request,
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def generate(self, system_role: str, prompt: str, max_tokens: int, temperature: float) -> str:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_role},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        response = self._transport(
            "POST",
            f"{self._base_url}/chat/completions",
            provider=AI_PROVIDER_NAME,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json_body=payload,
            timeout=self._timeout,
        )
        raw = decode_json(response, AI_PROVIDER_NAME)
        if not response.ok:
            error = raw.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise GenerationFailed(
                f"AI request failed with HTTP {response.status}: {message or 'no detail'}",
                provider=AI_PROVIDER_NAME,
            )
        try:
            return raw["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise GenerationFailed("AI response had no choices", provider=AI_PROVIDER_NAME) from exc


@dataclass(frozen=True)
class AiProviderFactory:
    """Summary: Factory for selecting AI providers from configuration.

    Importance: Keeps provider selection logic centralized.
    Alternatives: Wire providers manually at the application entrypoint.
    """

    config: AppConfig
    transport: Transport = send_request

    def build(self) -> AiProvider:
        if self.config.ai_provider == "openai":
            return OpenAiProvider(
                self.config.openai_api_key,
                self.config.openai_model,
                self.config.openai_base_url,
                transport=self.transport,
                timeout=self.config.ai_timeout_seconds,
            )
        if self.config.ai_provider != "mock":
            logger.warning("Unknown AI provider %s, falling back to mock.", self.config.ai_provider)
        return MockAiProvider()


class ResponseGenerator:
    """Summary: Guarded entry point for every AI call.

    Importance: Fails before any network call when no credential is configured and rejects empty output.
    Alternatives: Let each service call the provider and check results itself.
    """

    def __init__(self, provider: AiProvider, api_key_configured: bool) -> None:
        self._provider = provider
        self._configured = api_key_configured

    def complete(
        self,
        system_role: str,
        instruction: str,
        max_output_length: int,
        temperature: float,
    ) -> str:
        """Summary: Generate free text for an instruction.

        Importance: Upstream errors and blank answers surface as GenerationFailed.
        Alternatives: Return empty strings and let callers decide.
        """

        if not self._configured:
            raise ProviderUnavailable("AI provider is not configured", provider=AI_PROVIDER_NAME)
        try:
            text = self._provider.generate(system_role, instruction, max_output_length, temperature)
        except GenerationFailed:
            raise
        except IntegrationError as exc:
            raise GenerationFailed(f"AI request failed: {exc.message}", provider=AI_PROVIDER_NAME) from exc
        if not text or not text.strip():
            raise GenerationFailed("AI returned an empty response", provider=AI_PROVIDER_NAME)
        logger.info("AI completion produced %s characters.", len(text.strip()))
        return text.strip()

    def generate_structured(
        self,
        instruction: str,
        record_schema_hint: dict[str, Any],
        array_field: str = "resources",
        max_output_length: int = 1000,
        temperature: float = 0.7,
    ) -> str:
        """Summary: Ask for one JSON object holding a single named array of records.

        Importance: An inline example of the exact shape keeps model output parseable.
        Alternatives: Use provider JSON modes or function calling.
        """

        example = json.dumps({array_field: [record_schema_hint]}, indent=2)
        prompt = (
            f"{instruction}\n\n"
            f'Respond with a single JSON object with one field named "{array_field}" '
            "holding an array of records. Do not include any text outside the JSON. "
            f"Use exactly this shape:\n{example}"
        )
        return self.complete(STRUCTURED_ROLE, prompt, max_output_length, temperature)
