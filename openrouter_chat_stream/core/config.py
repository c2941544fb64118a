"""Configuration management for the OpenRouter chat stream client.

This module contains the configuration schema and shared constants:
- Valves: connection, timeout, logging and decoding settings
- Attribution headers sent to OpenRouter
- Wire-format constants shared by the streaming subsystem
"""

from __future__ import annotations

import logging
import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

_OPENROUTER_TITLE = "OpenRouter chat stream client"
_OPENROUTER_REFERER = "https://github.com/openrouter-chat-stream/openrouter-chat-stream/"
_DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

SSE_DATA_PREFIX = "data: "
SSE_DONE_SENTINEL = "[DONE]"
DEFAULT_IMAGE_MEDIA_TYPE = "image/png"
DEFAULT_NO_CONTENT_MESSAGE = "No response content"
DEFAULT_HTTP_ERROR_TEMPLATE = "API request failed: {status}"

_ALLOWED_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_base_url() -> str:
    return (os.getenv("OPENROUTER_API_BASE_URL") or "").strip() or _DEFAULT_BASE_URL


def _default_api_key() -> str:
    return (os.getenv("OPENROUTER_API_KEY") or "").strip()


def _default_log_level() -> str:
    """Return the env-provided log level, falling back to INFO when unknown."""
    value = (os.getenv("GLOBAL_LOG_LEVEL") or "INFO").strip().upper()
    if value not in _ALLOWED_LOG_LEVELS:
        return "INFO"
    return value


# -----------------------------------------------------------------------------
# Valves
# -----------------------------------------------------------------------------

class Valves(BaseModel):
    """Client configuration shared across streaming sessions."""

    model_config = ConfigDict(validate_assignment=True, validate_default=True)

    # Connection & Auth
    BASE_URL: str = Field(
        default_factory=_default_base_url,
        description="OpenRouter API base URL. Override this if you are using a gateway or proxy.",
    )
    API_KEY: str = Field(
        default_factory=_default_api_key,
        description="Your OpenRouter API key. Defaults to the OPENROUTER_API_KEY environment variable.",
    )
    HTTP_REFERER_OVERRIDE: str = Field(
        default="",
        description=(
            "Override the `HTTP-Referer` header sent to OpenRouter for app attribution. "
            "Must be a full URL including scheme (e.g. https://example.com). "
            "When empty, the default project URL is used."
        ),
    )
    X_TITLE: str = Field(
        default=_OPENROUTER_TITLE,
        description="Application title sent in the `X-Title` attribution header.",
    )

    # Timeouts
    HTTP_CONNECT_TIMEOUT_SECONDS: int = Field(
        default=10,
        ge=1,
        description="Seconds to wait for the TCP/TLS connection to OpenRouter before failing.",
    )
    HTTP_TOTAL_TIMEOUT_SECONDS: Optional[int] = Field(
        default=None,
        ge=1,
        description="Overall HTTP timeout (seconds). Null disables it so long streams are not interrupted.",
    )
    HTTP_SOCK_READ_SECONDS: int = Field(
        default=300,
        ge=1,
        description="Maximum idle seconds between received stream chunks.",
    )
    MAX_CONNECT_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made to open the request on connection errors. Streams are never replayed.",
    )

    # Decoding
    DEFAULT_IMAGE_MEDIA_TYPE: str = Field(
        default=DEFAULT_IMAGE_MEDIA_TYPE,
        description="Media type used to wrap bare base64 image payloads into data URLs.",
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default_factory=_default_log_level,
        description="Minimum level for session log capture. Defaults to GLOBAL_LOG_LEVEL.",
    )

    @field_validator("BASE_URL")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        cleaned = (value or "").strip().rstrip("/")
        if not cleaned.startswith(("http://", "https://")):
            raise ValueError("BASE_URL must start with http:// or https://")
        return cleaned

    @field_validator("DEFAULT_IMAGE_MEDIA_TYPE")
    @classmethod
    def _validate_media_type(cls, value: str) -> str:
        cleaned = (value or "").strip().lower()
        if not cleaned.startswith("image/"):
            raise ValueError("DEFAULT_IMAGE_MEDIA_TYPE must be an image/* media type")
        return cleaned


def _select_openrouter_http_referer(valves: Optional[Valves] = None) -> str:
    """Return the attribution referer, honoring a valid override."""
    override = ((valves.HTTP_REFERER_OVERRIDE if valves else "") or "").strip()
    if override.startswith(("http://", "https://")):
        return override
    if override:
        LOGGER.warning("Ignoring HTTP_REFERER_OVERRIDE without scheme: %s", override)
    return _OPENROUTER_REFERER
