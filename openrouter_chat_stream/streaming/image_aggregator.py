"""Image aggregation across the streamed image encodings.

Images reach the client in four ways:

1. complete references in ``delta.images`` (remote URL, data URL, or
   ``b64_json`` without an index),
2. base64 fragments in ``delta.images`` that share an integer ``index`` and
   must be concatenated,
3. a flat ``data`` list of finished generation results,
4. image parts of a final, non-incremental message.

Complete references are appended immediately. Fragments are only finalized
when the stream ends, since no single event says a fragment is the last one.
Every append is de-duplicated by exact string equality.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Optional

from ..core.config import DEFAULT_IMAGE_MEDIA_TYPE
from ..core.utils import (
    _is_data_url,
    _is_remote_url,
    _normalize_media_type,
    _normalize_optional_str,
    _split_data_url,
    _wrap_base64_image,
)

LOGGER = logging.getLogger(__name__)


def _descriptor_index(descriptor: dict[str, Any]) -> Optional[int]:
    index = descriptor.get("index")
    if isinstance(index, bool) or not isinstance(index, int):
        return None
    return index


def _descriptor_url(descriptor: dict[str, Any]) -> Optional[str]:
    for key in ("image_url", "url"):
        candidate = descriptor.get(key)
        if isinstance(candidate, dict):
            candidate = candidate.get("url")
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


class ImageAggregator:
    """Collect, reassemble and de-duplicate image resources for one stream."""

    def __init__(self, *, default_media_type: str = DEFAULT_IMAGE_MEDIA_TYPE, logger: Optional[logging.Logger] = None):
        self.default_media_type = _normalize_media_type(default_media_type)
        self.logger = logger or LOGGER
        self.images: list[str] = []
        self._seen: set[str] = set()
        self._fragments: dict[int, str] = {}
        self._fragment_media_types: dict[int, str] = {}
        self._finalized = False

    @property
    def pending_fragments(self) -> dict[int, str]:
        """Buffered base64 per index (a copy)."""
        return dict(self._fragments)

    def add_complete(self, resource: Optional[str]) -> list[str]:
        """Append a ready-to-use image string; returns it when it was new."""
        resource = _normalize_optional_str(resource)
        if not resource or resource in self._seen:
            return []
        self._seen.add(resource)
        self.images.append(resource)
        return [resource]

    def add_fragment(self, index: int, chunk: str, *, media_type: Optional[str] = None) -> None:
        """Buffer a base64 fragment (or a data URL's payload) for ``index``."""
        if self._finalized:
            self.logger.warning("Ignoring image fragment for index %s after finalization", index)
            return
        split = _split_data_url(chunk) if _is_data_url(chunk) else None
        if split is not None:
            media_type, chunk = split
        elif _is_data_url(chunk):
            chunk = chunk.partition(",")[2]
        if media_type and index not in self._fragment_media_types:
            self._fragment_media_types[index] = _normalize_media_type(media_type, self.default_media_type)
        self._fragments[index] = self._fragments.get(index, "") + chunk.strip()

    def add_delta_images(self, descriptors: list[Any]) -> list[str]:
        """Route ``delta.images`` descriptors to the complete or fragment path."""
        added: list[str] = []
        for descriptor in descriptors:
            if isinstance(descriptor, str):
                added.extend(self.add_complete(descriptor))
                continue
            if not isinstance(descriptor, dict):
                continue
            url = _descriptor_url(descriptor)
            b64 = descriptor.get("b64_json")
            b64 = b64 if isinstance(b64, str) and b64.strip() else None
            index = _descriptor_index(descriptor)

            if url and _is_remote_url(url):
                added.extend(self.add_complete(url))
            elif index is not None and (b64 or url):
                self.add_fragment(index, b64 or url or "")
            elif url:
                added.extend(self.add_complete(url))
            elif b64:
                added.extend(self.add_complete(_wrap_base64_image(b64.strip(), self.default_media_type)))
            else:
                self.logger.debug("Ignoring image descriptor without url or b64_json: %s", sorted(descriptor))
        return added

    def add_generation_results(self, entries: list[Any]) -> list[str]:
        """Append finished ``{"url"|"b64_json"}`` generation results."""
        added: list[str] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            url = entry.get("url")
            b64 = entry.get("b64_json")
            if isinstance(url, str) and url.strip():
                added.extend(self.add_complete(url))
            elif isinstance(b64, str) and b64.strip():
                added.extend(self.add_complete(_wrap_base64_image(b64.strip(), self.default_media_type)))
        return added

    def add_message_images(self, descriptors: list[Any]) -> list[str]:
        """Append ``message.images`` descriptors; a final message is never fragmented."""
        added: list[str] = []
        for descriptor in descriptors:
            if isinstance(descriptor, str):
                added.extend(self.add_complete(descriptor))
            elif isinstance(descriptor, dict):
                url = _descriptor_url(descriptor)
                b64 = descriptor.get("b64_json")
                if url:
                    added.extend(self.add_complete(url))
                elif isinstance(b64, str) and b64.strip():
                    added.extend(self.add_complete(_wrap_base64_image(b64.strip(), self.default_media_type)))
        return added

    def finalize(self) -> list[str]:
        """Wrap every buffered fragment set, in index order, and append it."""
        if self._finalized:
            return []
        self._finalized = True
        added: list[str] = []
        for index in sorted(self._fragments):
            payload = self._fragments[index]
            if not payload:
                self.logger.warning("Image fragment buffer for index %s is empty; skipping", index)
                continue
            try:
                base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as exc:
                self.logger.warning(
                    "Image fragment buffer for index %s is not valid base64 (%s); emitting as-is",
                    index,
                    exc,
                )
            media_type = self._fragment_media_types.get(index, self.default_media_type)
            added.extend(self.add_complete(_wrap_base64_image(payload, media_type)))
        self._fragments.clear()
        return added
