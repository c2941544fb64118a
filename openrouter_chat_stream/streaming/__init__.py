"""Streaming response processing subsystem.

This package contains streaming-related functionality:
- sse_parser: byte framing and event record parsing
- payloads: classification of parsed payloads into known shapes
- content: text and inline image extraction from message content
- image_aggregator: image reassembly and de-duplication
- event_emitter: caller callbacks and text accumulation
- streaming_core: the per-call decode session
"""

from .streaming_core import StreamDecodeSession, StreamResult, decode_stream
from .sse_parser import SSEFrameReader, parse_event_record
from .payloads import ClassifiedPayload, PayloadKind, classify_payload
from .image_aggregator import ImageAggregator
from .event_emitter import CallbackEmitter

__all__ = [
    "StreamDecodeSession",
    "StreamResult",
    "decode_stream",
    "SSEFrameReader",
    "parse_event_record",
    "ClassifiedPayload",
    "PayloadKind",
    "classify_payload",
    "ImageAggregator",
    "CallbackEmitter",
]
