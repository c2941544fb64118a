"""Server-Sent Events (SSE) framing and record parsing.

This module turns raw transport chunks into parsed payloads:
- Incremental UTF-8 decoding that holds split multi-byte sequences
- Line framing with a carry buffer across chunk boundaries
- ``data:`` record filtering and ``[DONE]`` detection
- JSON parsing that drops malformed records instead of raising
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass
from typing import Optional

from ..core.config import SSE_DATA_PREFIX, SSE_DONE_SENTINEL
from .payloads import MALFORMED_PAYLOAD, ClassifiedPayload, classify_payload

LOGGER = logging.getLogger(__name__)


class SSEFrameReader:
    """Split a chunked byte stream into complete ``data:`` event records.

    The reader owns the carry buffer for one streaming session. Each call to
    :meth:`feed` returns only records terminated by a newline; the trailing
    partial line stays buffered until more bytes arrive. Whatever is left when
    the stream ends is discarded by :meth:`close`, never emitted.
    """

    def __init__(self, *, prefix: str = SSE_DATA_PREFIX, logger: Optional[logging.Logger] = None):
        self.prefix = prefix
        self.logger = logger or LOGGER
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._carry = ""
        self._closed = False

    @property
    def carry(self) -> str:
        """The buffered, not yet newline-terminated tail."""
        return self._carry

    def feed(self, chunk: bytes) -> list[str]:
        """Decode ``chunk`` and return the complete event records it finishes."""
        if self._closed:
            raise RuntimeError("SSEFrameReader is closed")
        if not chunk:
            return []
        text = self._decoder.decode(chunk)
        if not text:
            return []
        lines = (self._carry + text).split("\n")
        self._carry = lines.pop()
        records: list[str] = []
        for line in lines:
            if line.endswith("\r"):
                line = line[:-1]
            if line.startswith(self.prefix):
                records.append(line)
        return records

    def close(self) -> None:
        """End the session, dropping any unterminated tail."""
        if self._closed:
            return
        tail = self._carry + self._decoder.decode(b"", final=True)
        self._carry = ""
        self._closed = True
        if tail.strip():
            self.logger.debug("Discarding %d chars of unterminated SSE data at end of stream", len(tail))


@dataclass(slots=True)
class ParsedRecord:
    """Outcome of parsing one event record."""

    done: bool = False
    payload: Optional[ClassifiedPayload] = None

    @property
    def malformed(self) -> bool:
        return self.payload is MALFORMED_PAYLOAD


DONE_RECORD = ParsedRecord(done=True)


def parse_event_record(record: str, *, prefix: str = SSE_DATA_PREFIX) -> ParsedRecord:
    """Strip the ``data:`` prefix, detect the sentinel, then parse and classify JSON.

    Malformed records are logged at debug level and reported as ``MALFORMED``;
    they never raise.
    """
    body = record[len(prefix):] if record.startswith(prefix) else record
    body = body.strip()
    if body == SSE_DONE_SENTINEL:
        return DONE_RECORD
    try:
        parsed = json.loads(body)
    except (ValueError, RecursionError) as exc:
        LOGGER.debug("Discarding malformed SSE record (%s): %.120s", exc, body)
        return ParsedRecord(payload=MALFORMED_PAYLOAD)
    classified = classify_payload(parsed)
    if classified is MALFORMED_PAYLOAD:
        LOGGER.debug("Discarding non-object SSE payload: %.120s", body)
    return ParsedRecord(payload=classified)
