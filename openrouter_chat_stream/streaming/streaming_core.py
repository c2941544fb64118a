"""Streaming decode session for chat completion event streams.

A :class:`StreamDecodeSession` owns every piece of call-scoped state (the
frame reader's carry buffer, the image fragment buffer and the result
accumulator) and is created fresh for each decode. The only suspension points
are waiting for the next transport chunk and awaiting async callbacks.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable, AsyncIterator, Optional

from pydantic import BaseModel, Field

from ..core.config import DEFAULT_IMAGE_MEDIA_TYPE
from ..core.errors import StreamCancelledError
from .content import normalize_content
from .event_emitter import CallbackEmitter, ImageCallback, TextCallback
from .image_aggregator import ImageAggregator
from .payloads import ClassifiedPayload, PayloadKind
from .sse_parser import SSEFrameReader, parse_event_record

LOGGER = logging.getLogger(__name__)


class StreamResult(BaseModel):
    """Aggregated outcome of one decoded stream."""

    text: str = ""
    images: list[str] = Field(default_factory=list)
    usage: Optional[dict[str, Any]] = None
    finish_reason: Optional[str] = None


async def _next_chunk(iterator: AsyncIterator[bytes], cancel_event: Optional[asyncio.Event]) -> bytes:
    """Await the next chunk, failing fast once ``cancel_event`` is set."""
    if cancel_event is None:
        return await iterator.__anext__()
    if cancel_event.is_set():
        raise StreamCancelledError("Stream decoding cancelled")

    next_task = asyncio.ensure_future(iterator.__anext__())
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({next_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        next_task.cancel()
        raise
    finally:
        cancel_task.cancel()

    if cancel_event.is_set():
        next_task.cancel()
        await asyncio.gather(next_task, return_exceptions=True)
        raise StreamCancelledError("Stream decoding cancelled")
    return next_task.result()


class StreamDecodeSession:
    """Decode one SSE byte stream into text increments and image resources."""

    def __init__(
        self,
        on_text: Optional[TextCallback] = None,
        on_image: Optional[ImageCallback] = None,
        *,
        default_media_type: str = DEFAULT_IMAGE_MEDIA_TYPE,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or LOGGER
        self.default_media_type = default_media_type
        self.reader = SSEFrameReader(logger=self.logger)
        self.aggregator = ImageAggregator(default_media_type=default_media_type, logger=self.logger)
        self.emitter = CallbackEmitter(on_text, on_image, logger=self.logger)
        self.usage: Optional[dict[str, Any]] = None
        self.finish_reason: Optional[str] = None
        self.done_received = False
        self.records_seen = 0
        self.malformed_records = 0
        self._delta_text_seen = False
        self._finished = False

    async def feed(self, chunk: bytes) -> None:
        """Process every complete record contained in ``chunk``."""
        for record in self.reader.feed(chunk):
            await self.handle_record(record)

    async def handle_record(self, record: str) -> None:
        self.records_seen += 1
        parsed = parse_event_record(record)
        if parsed.done:
            self.done_received = True
            return
        if parsed.malformed:
            self.malformed_records += 1
            return
        if parsed.payload is not None:
            await self.handle_payload(parsed.payload)

    async def handle_payload(self, payload: ClassifiedPayload) -> None:
        """Route one classified payload; a payload may carry several shapes."""
        if payload.usage is not None:
            self.usage = payload.usage
        if payload.finish_reason:
            self.finish_reason = payload.finish_reason

        if payload.has(PayloadKind.UPSTREAM_ERROR):
            error = payload.error or {}
            self.logger.warning(
                "Ignoring upstream error event (code=%s): %s",
                error.get("code"),
                error.get("message"),
            )

        if payload.has(PayloadKind.DELTA_TEXT):
            self._delta_text_seen = True
            await self._emit_content(payload.delta_content, include_text=True)

        if payload.has(PayloadKind.DELTA_IMAGES):
            await self.emitter.emit_images(self.aggregator.add_delta_images(payload.delta_images))

        if payload.has(PayloadKind.GENERATION_RESULTS):
            await self.emitter.emit_images(self.aggregator.add_generation_results(payload.generation_results))

        if payload.has(PayloadKind.FINAL_MESSAGE):
            # Terminal messages repeat streamed text; only use it when nothing streamed.
            await self._emit_content(payload.message_content, include_text=not self._delta_text_seen)
            await self.emitter.emit_images(self.aggregator.add_message_images(payload.message_images))

    async def _emit_content(self, content: Any, *, include_text: bool) -> None:
        for piece in normalize_content(content, default_media_type=self.default_media_type):
            if piece.kind == "text":
                if include_text:
                    await self.emitter.emit_text(piece.value)
            else:
                await self.emitter.emit_images(self.aggregator.add_complete(piece.value))

    async def finish(self) -> StreamResult:
        """Close the reader, finalize buffered fragments and build the result."""
        if not self._finished:
            self._finished = True
            self.reader.close()
            await self.emitter.emit_images(self.aggregator.finalize())
            self.logger.debug(
                "Stream decoded: records=%d malformed=%d text_events=%d images=%d done=%s",
                self.records_seen,
                self.malformed_records,
                self.emitter.text_events,
                len(self.aggregator.images),
                self.done_received,
            )
        return self.result()

    def result(self) -> StreamResult:
        return StreamResult(
            text=self.emitter.text,
            images=list(self.aggregator.images),
            usage=self.usage,
            finish_reason=self.finish_reason,
        )

    async def run(
        self,
        chunks: AsyncIterable[bytes],
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> StreamResult:
        """Consume ``chunks`` until the transport ends, then finalize."""
        iterator = chunks.__aiter__()
        while True:
            try:
                chunk = await _next_chunk(iterator, cancel_event)
            except StopAsyncIteration:
                break
            except StreamCancelledError:
                self.reader.close()
                self.logger.debug("Stream decoding cancelled after %d records", self.records_seen)
                raise
            await self.feed(chunk)
        return await self.finish()


async def decode_stream(
    chunks: AsyncIterable[bytes],
    on_text: Optional[TextCallback] = None,
    on_image: Optional[ImageCallback] = None,
    *,
    cancel_event: Optional[asyncio.Event] = None,
    default_media_type: str = DEFAULT_IMAGE_MEDIA_TYPE,
    logger: Optional[logging.Logger] = None,
) -> StreamResult:
    """Decode a chat completion SSE byte stream with a fresh session.

    Args:
        chunks: Async source of raw byte chunks, ending at end of stream.
        on_text: Called once per text increment with exactly that increment.
        on_image: Called once per new, non-duplicate image resource.
        cancel_event: When set, the pending chunk wait fails with
            :class:`StreamCancelledError`.
        default_media_type: Media type for bare base64 image payloads.

    Returns:
        StreamResult with the concatenated text and de-duplicated images.
    """
    session = StreamDecodeSession(
        on_text,
        on_image,
        default_media_type=default_media_type,
        logger=logger,
    )
    return await session.run(chunks, cancel_event=cancel_event)
