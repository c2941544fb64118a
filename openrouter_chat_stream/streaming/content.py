"""Content normalization for ``delta.content`` and ``message.content``.

Providers send content either as a plain string or as an ordered list of
typed parts. This module flattens both into an ordered list of pieces so text
increments and inline images keep their relative order within one payload.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, NamedTuple, Optional

from ..core.config import DEFAULT_IMAGE_MEDIA_TYPE
from ..core.utils import _normalize_optional_str, _wrap_base64_image

LOGGER = logging.getLogger(__name__)


class ContentPiece(NamedTuple):
    kind: Literal["text", "image"]
    value: str


def image_part_to_resource(part: dict[str, Any], *, default_media_type: str = DEFAULT_IMAGE_MEDIA_TYPE) -> Optional[str]:
    """Resolve an ``image_url`` or ``image`` content part into a usable image string."""
    ptype = part.get("type")
    if ptype == "image_url":
        image_url = part.get("image_url")
        if isinstance(image_url, dict):
            image_url = image_url.get("url")
        return _normalize_optional_str(image_url) if isinstance(image_url, str) else None
    if ptype == "image":
        source = part.get("source")
        if not isinstance(source, dict):
            return None
        data = source.get("data")
        if not isinstance(data, str) or not data.strip():
            # Anthropic-style url sources carry no bytes
            url = source.get("url")
            return _normalize_optional_str(url) if isinstance(url, str) else None
        media_type = source.get("media_type") or default_media_type
        return _wrap_base64_image(data.strip(), media_type)
    return None


def normalize_content(content: Any, *, default_media_type: str = DEFAULT_IMAGE_MEDIA_TYPE) -> list[ContentPiece]:
    """Flatten string or typed-part content into ordered text and image pieces.

    Empty text is skipped; unknown part types are ignored.
    """
    if isinstance(content, str):
        return [ContentPiece("text", content)] if content else []
    if not isinstance(content, list):
        return []

    pieces: list[ContentPiece] = []
    for part in content:
        if isinstance(part, str):
            if part:
                pieces.append(ContentPiece("text", part))
            continue
        if not isinstance(part, dict):
            continue
        ptype = part.get("type")
        if ptype == "text":
            text = part.get("text")
            if isinstance(text, str) and text:
                pieces.append(ContentPiece("text", text))
        elif ptype in ("image_url", "image"):
            resource = image_part_to_resource(part, default_media_type=default_media_type)
            if resource:
                pieces.append(ContentPiece("image", resource))
            else:
                LOGGER.debug("Ignoring %s content part without a usable source", ptype)
    return pieces
