"""Summary: Parser that turns free-form AI output into validated learning resources.

Importance: Marks the boundary where untrusted model text becomes internal data.
Alternatives: Trust model JSON as-is and validate downstream.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from omnialink.errors import MalformedResponse
from omnialink.models import (
    AI_SUGGESTED,
    FALLBACK_ENUM_VALUE,
    RESOURCE_CATEGORIES,
    RESOURCE_TYPES,
    GeneratedResource,
)


logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled resource"
DEFAULT_DESCRIPTION = "No description provided."
DEFAULT_URL = "#"

_FENCE_PATTERN = re.compile(r"```[\w+-]*[ \t]*\n?(.*?)```", re.DOTALL)


class ExtractionStrategy(Protocol):
    def extract(self, raw_text: str) -> str | None: ...


@dataclass(frozen=True)
class FencedBlockStrategy:
    """Summary: Pull JSON out of a fenced code block."""

    def extract(self, raw_text: str) -> str | None:
        match = _FENCE_PATTERN.search(raw_text)
        if not match:
            return None
        body = match.group(1).strip()
        return body or None


@dataclass(frozen=True)
class RawTextStrategy:
    """Summary: Treat the whole stripped output as the JSON document."""

    def extract(self, raw_text: str) -> str | None:
        stripped = raw_text.strip()
        return stripped or None


DEFAULT_STRATEGIES: tuple[ExtractionStrategy, ...] = (FencedBlockStrategy(), RawTextStrategy())


def extract_json_text(raw_text: str, strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES) -> str:
    """Summary: Run extraction strategies in order and return the first hit.

    Importance: Models wrap JSON inconsistently, so each wrapping is handled by one small strategy.
    Alternatives: Strip fences with a single ad-hoc regex.
    """

    for strategy in strategies:
        candidate = strategy.extract(raw_text or "")
        if candidate:
            return candidate
    raise MalformedResponse("AI response contained no JSON text")


def parse_resource_list(raw_text: str, array_field: str = "resources") -> list[GeneratedResource]:
    """Summary: Parse and coerce an AI payload into GeneratedResource records.

    Importance: Invalid enum values and blank fields are repaired rather than rejected.
    Alternatives: Validate with a pydantic model and reject any bad record.
    """

    text = extract_json_text(raw_text)
    try:
        document = json.loads(text)
    except ValueError as exc:
        raise MalformedResponse("AI response is not valid JSON") from exc
    if not isinstance(document, dict):
        raise MalformedResponse("AI response is not a JSON object")
    items = document.get(array_field)
    if not isinstance(items, list) or not items:
        raise MalformedResponse(f'AI response has no non-empty "{array_field}" array')
    resources: list[GeneratedResource] = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object entry in AI response.")
            continue
        resources.append(_coerce_resource(item))
    if not resources:
        raise MalformedResponse(f'AI response "{array_field}" array holds no objects')
    return resources


def _coerce_resource(item: dict[str, Any]) -> GeneratedResource:
    return GeneratedResource(
        title=_text(item.get("title")) or DEFAULT_TITLE,
        description=_text(item.get("description")) or DEFAULT_DESCRIPTION,
        url=_text(item.get("url")) or DEFAULT_URL,
        type=_enum(item.get("type"), RESOURCE_TYPES),
        category=_enum(item.get("category"), RESOURCE_CATEGORIES),
        source=AI_SUGGESTED,
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _enum(value: Any, allowed: tuple[str, ...]) -> str:
    normalized = _text(value).lower()
    return normalized if normalized in allowed else FALLBACK_ENUM_VALUE
