"""Error types and OpenRouter error payload extraction.

This module handles all error-related functionality:
- OpenRouterAPIError: raised when the endpoint rejects a request before streaming
- StreamCancelledError: raised when an external cancel signal interrupts decoding
- Error body normalization into structured metadata
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .config import DEFAULT_HTTP_ERROR_TEMPLATE
from .utils import _normalize_optional_str, _pretty_json, _safe_json_loads

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------

class OpenRouterAPIError(RuntimeError):
    """Fatal transport error raised when OpenRouter answers with a non-success status."""

    def __init__(
        self,
        *,
        status: int,
        reason: str,
        provider: Optional[str] = None,
        openrouter_message: Optional[str] = None,
        openrouter_code: Optional[Any] = None,
        upstream_message: Optional[str] = None,
        request_id: Optional[str] = None,
        raw_body: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        requested_model: Optional[str] = None,
    ) -> None:
        """Normalize raw OpenRouter metadata into convenient attributes."""
        self.status = status
        self.reason = reason
        self.provider = provider
        self.openrouter_message = (openrouter_message or "").strip() or None
        self.openrouter_code = openrouter_code
        self.upstream_message = (upstream_message or "").strip() or None
        self.request_id = (request_id or "").strip() or None
        self.raw_body = raw_body or ""
        self.metadata = metadata or {}
        self.metadata_json = _pretty_json(self.metadata)
        self.requested_model = (requested_model or "").strip() or None
        summary = self.openrouter_message or DEFAULT_HTTP_ERROR_TEMPLATE.format(status=self.status)
        super().__init__(summary)

    @property
    def message(self) -> str:
        return str(self)


class StreamCancelledError(RuntimeError):
    """Raised when the caller's cancel signal fires while waiting for the next chunk."""


# -----------------------------------------------------------------------------
# Error body parsing
# -----------------------------------------------------------------------------

def _extract_openrouter_error_details(body_text: Optional[str]) -> dict[str, Any]:
    """Normalize OpenRouter error payloads into structured metadata."""
    parsed = _safe_json_loads(body_text) if body_text else None
    error_section = parsed.get("error", {}) if isinstance(parsed, dict) else {}
    if not isinstance(error_section, dict):
        # Some gateways answer with {"error": "message"}
        error_section = {"message": error_section} if isinstance(error_section, str) else {}
    metadata = error_section.get("metadata", {})
    metadata_dict = metadata if isinstance(metadata, dict) else {}

    raw_meta = metadata_dict.get("raw")
    if isinstance(raw_meta, str):
        raw_details = _safe_json_loads(raw_meta)
    elif isinstance(raw_meta, dict):
        raw_details = raw_meta
    else:
        raw_details = None

    upstream_error = raw_details.get("error", {}) if isinstance(raw_details, dict) else {}
    upstream_message = (
        upstream_error.get("message")
        if isinstance(upstream_error, dict)
        else None
    ) or (raw_details.get("message") if isinstance(raw_details, dict) else None)

    request_id = (
        metadata_dict.get("request_id")
        or (raw_details.get("request_id") if isinstance(raw_details, dict) else None)
        or (parsed.get("request_id") if isinstance(parsed, dict) else None)
    )

    return {
        "provider": _normalize_optional_str(
            metadata_dict.get("provider_name") or metadata_dict.get("provider")
        ),
        "openrouter_message": _normalize_optional_str(error_section.get("message")),
        "openrouter_code": error_section.get("code"),
        "upstream_message": _normalize_optional_str(upstream_message),
        "request_id": _normalize_optional_str(request_id),
        "raw_body": body_text or "",
        "metadata": metadata_dict,
    }


def _build_openrouter_api_error(
    status: int,
    reason: str,
    body_text: Optional[str],
    *,
    requested_model: Optional[str] = None,
    extra_metadata: Optional[dict[str, Any]] = None,
) -> OpenRouterAPIError:
    """Create a structured error wrapper for a non-success OpenRouter response."""
    details = _extract_openrouter_error_details(body_text)
    metadata_block = details.get("metadata") or {}
    if extra_metadata:
        metadata_block = {**metadata_block, **extra_metadata}
    return OpenRouterAPIError(
        status=status,
        reason=reason,
        provider=details.get("provider"),
        openrouter_message=details.get("openrouter_message"),
        openrouter_code=details.get("openrouter_code"),
        upstream_message=details.get("upstream_message"),
        request_id=details.get("request_id"),
        raw_body=details.get("raw_body"),
        metadata=metadata_block,
        requested_model=requested_model,
    )
