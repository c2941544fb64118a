"""Shared utility functions for the chat stream client.

This module contains reusable helpers used across the codebase:
- JSON helpers (_safe_json_loads, _pretty_json)
- String normalization
- Data URL helpers for embedded images
- Request id generation

These utilities have minimal dependencies and can be used by any module.
"""

from __future__ import annotations

import json
import secrets
import time
from typing import Any, Optional

from .config import DEFAULT_IMAGE_MEDIA_TYPE

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

CROCKFORD_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
REQUEST_ID_TIME_LENGTH = 10
REQUEST_ID_RANDOM_LENGTH = 6
_REQUEST_ID_TIME_MASK = (1 << (REQUEST_ID_TIME_LENGTH * 5)) - 1
_DATA_URL_PREFIX = "data:"
_BASE64_MARKER = ";base64,"

# -----------------------------------------------------------------------------
# JSON Helpers
# -----------------------------------------------------------------------------

def _pretty_json(value: Any) -> str:
    """Return a human-readable JSON string or an empty string when not applicable."""
    if value is None:
        return ""
    if isinstance(value, (str, bytes)):
        text = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value
        return text.strip()
    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def _safe_json_loads(payload: Optional[str]) -> Any:
    """Return parsed JSON or None without raising."""
    if not payload:
        return None
    try:
        return json.loads(payload)
    except ValueError:
        return None


# -----------------------------------------------------------------------------
# String Normalization
# -----------------------------------------------------------------------------

def _normalize_optional_str(value: Any) -> Optional[str]:
    """Convert arbitrary input into a trimmed string or None."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


# -----------------------------------------------------------------------------
# Data URLs
# -----------------------------------------------------------------------------

def _normalize_media_type(value: Any, default: str = DEFAULT_IMAGE_MEDIA_TYPE) -> str:
    """Lower-case a media type, mapping ``image/jpg`` to ``image/jpeg``."""
    text = _normalize_optional_str(value)
    if not text:
        return default
    text = text.lower()
    if text == "image/jpg":
        return "image/jpeg"
    return text


def _is_data_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(_DATA_URL_PREFIX)


def _is_remote_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(("http://", "https://"))


def _split_data_url(data_url: str) -> Optional[tuple[str, str]]:
    """Split ``data:<mime>;base64,<payload>`` into ``(mime, payload)``.

    Returns None when the string is not a base64 data URL.
    """
    if not _is_data_url(data_url):
        return None
    header, sep, payload = data_url.partition(_BASE64_MARKER)
    if not sep:
        return None
    mime_type = _normalize_media_type(header[len(_DATA_URL_PREFIX):])
    return mime_type, payload


def _wrap_base64_image(b64_data: str, media_type: Optional[str] = None) -> str:
    """Wrap bare base64 into a data URL, passing existing data URLs through."""
    if _is_data_url(b64_data):
        return b64_data
    return f"data:{_normalize_media_type(media_type)};base64,{b64_data}"


# -----------------------------------------------------------------------------
# Identifiers
# -----------------------------------------------------------------------------

def _encode_crockford(value: int, length: int) -> str:
    """Encode an integer into a fixed-width Crockford base32 string."""
    if value < 0:
        raise ValueError("value must be non-negative")
    chars = ["0"] * length
    for idx in range(length - 1, -1, -1):
        chars[idx] = CROCKFORD_ALPHABET[value & 0x1F]
        value >>= 5
    return "".join(chars)


def generate_request_id() -> str:
    """Generate a sortable 16-char request id (time component + random tail)."""
    timestamp = (time.time_ns() // 1_000_000) & _REQUEST_ID_TIME_MASK
    time_component = _encode_crockford(timestamp, REQUEST_ID_TIME_LENGTH)
    random_bits = secrets.randbits(REQUEST_ID_RANDOM_LENGTH * 5)
    return f"{time_component}{_encode_crockford(random_bits, REQUEST_ID_RANDOM_LENGTH)}"
