"""Payload classification for chat completion stream events.

Each parsed SSE payload is classified once into a closed set of shapes. The
decode session routes on those kinds instead of re-probing the raw dict.

Recognized shapes::

    {"choices": [{"delta": {"content": str | [part, ...], "images": [descriptor, ...]}}]}
    {"data": [{"url": ..., "b64_json": ...}]}
    {"choices": [{"message": {"content": str | [part, ...], "images": [descriptor, ...]}}]}
    {"error": {"message": ..., "code": ...}}
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional


class PayloadKind(str, enum.Enum):
    DELTA_TEXT = "delta_text"
    DELTA_IMAGES = "delta_images"
    GENERATION_RESULTS = "generation_results"
    FINAL_MESSAGE = "final_message"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED = "malformed"


@dataclass(slots=True)
class ClassifiedPayload:
    """One payload's recognized shapes plus the fields each shape carries."""

    kinds: frozenset[PayloadKind]
    delta_content: Any = None
    delta_images: list[Any] = field(default_factory=list)
    generation_results: list[Any] = field(default_factory=list)
    message_content: Any = None
    message_images: list[Any] = field(default_factory=list)
    error: Optional[dict[str, Any]] = None
    usage: Optional[dict[str, Any]] = None
    finish_reason: Optional[str] = None

    def has(self, kind: PayloadKind) -> bool:
        return kind in self.kinds


MALFORMED_PAYLOAD = ClassifiedPayload(kinds=frozenset({PayloadKind.MALFORMED}))


def _has_content(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value)
    return isinstance(value, list) and bool(value)


def classify_payload(payload: Any) -> ClassifiedPayload:
    """Classify a parsed JSON payload into its recognized shapes.

    Only the first choice is inspected. A payload matching no shape yields an
    empty kind set (e.g. a role-only delta or a usage-only trailer); anything
    that is not a JSON object is ``MALFORMED``.
    """
    if not isinstance(payload, dict):
        return MALFORMED_PAYLOAD

    kinds: set[PayloadKind] = set()
    result = ClassifiedPayload(kinds=frozenset())

    usage = payload.get("usage")
    if isinstance(usage, dict):
        result.usage = dict(usage)

    error = payload.get("error")
    if isinstance(error, dict):
        kinds.add(PayloadKind.UPSTREAM_ERROR)
        result.error = error
    elif isinstance(error, str) and error:
        kinds.add(PayloadKind.UPSTREAM_ERROR)
        result.error = {"message": error}

    data = payload.get("data")
    if isinstance(data, list) and data:
        kinds.add(PayloadKind.GENERATION_RESULTS)
        result.generation_results = data

    choices = payload.get("choices")
    choice0 = choices[0] if isinstance(choices, list) and choices else None
    if isinstance(choice0, dict):
        finish_reason = choice0.get("finish_reason")
        if isinstance(finish_reason, str) and finish_reason:
            result.finish_reason = finish_reason

        delta = choice0.get("delta")
        if isinstance(delta, dict):
            content = delta.get("content")
            if _has_content(content):
                kinds.add(PayloadKind.DELTA_TEXT)
                result.delta_content = content
            images = delta.get("images")
            if isinstance(images, list) and images:
                kinds.add(PayloadKind.DELTA_IMAGES)
                result.delta_images = images

        message = choice0.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if _has_content(content):
                kinds.add(PayloadKind.FINAL_MESSAGE)
                result.message_content = content
            message_images = message.get("images")
            if isinstance(message_images, list) and message_images:
                kinds.add(PayloadKind.FINAL_MESSAGE)
                result.message_images = message_images

    result.kinds = frozenset(kinds)
    return result
