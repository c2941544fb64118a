"""Tests for SSE framing and event record parsing.

Covers:
- Chunk-boundary invariance (every byte offset, mid multi-byte character, mid line)
- Carry buffer behavior and discard of unterminated tails
- Non-data line filtering and CRLF handling
- [DONE] sentinel and malformed record handling
"""

from __future__ import annotations

import json

import pytest

from openrouter_chat_stream.streaming.payloads import PayloadKind
from openrouter_chat_stream.streaming.sse_parser import (
    DONE_RECORD,
    SSEFrameReader,
    parse_event_record,
)


def _sse(obj: dict) -> str:
    return f"data: {json.dumps(obj, ensure_ascii=False)}\n\n"


STREAM = (
    ": keep-alive comment\n\n"
    + _sse({"choices": [{"delta": {"content": "Grüße "}}]})
    + "event: message\n"
    + _sse({"choices": [{"delta": {"content": "日本語 🎉"}}]})
    + "data: {not json}\n\n"
    + _sse({"choices": [{"delta": {"content": "fin"}}]})
    + "data: [DONE]\n\n"
).encode("utf-8")


def _records_for(chunks: list[bytes]) -> list[str]:
    reader = SSEFrameReader()
    records: list[str] = []
    for chunk in chunks:
        records.extend(reader.feed(chunk))
    reader.close()
    return records


# -----------------------------------------------------------------------------
# Framing
# -----------------------------------------------------------------------------

def test_whole_stream_yields_only_data_records():
    records = _records_for([STREAM])

    assert len(records) == 5
    assert all(record.startswith("data: ") for record in records)
    assert records[-1] == "data: [DONE]"


def test_split_at_every_offset_matches_single_chunk():
    expected = _records_for([STREAM])

    for offset in range(1, len(STREAM)):
        assert _records_for([STREAM[:offset], STREAM[offset:]]) == expected, offset


def test_byte_by_byte_feed_matches_single_chunk():
    expected = _records_for([STREAM])

    assert _records_for([STREAM[i:i + 1] for i in range(len(STREAM))]) == expected


def test_split_inside_multibyte_character_is_not_corrupted():
    payload = "data: 🎉\n".encode("utf-8")
    emoji_start = payload.index("🎉".encode("utf-8"))
    reader = SSEFrameReader()

    first = reader.feed(payload[: emoji_start + 2])
    second = reader.feed(payload[emoji_start + 2:])

    assert first == []
    assert second == ["data: 🎉"]
    assert "�" not in second[0]


def test_partial_line_is_carried_between_chunks():
    reader = SSEFrameReader()

    assert reader.feed(b'data: {"a"') == []
    assert reader.carry == 'data: {"a"'
    assert reader.feed(b": 1}\n") == ['data: {"a": 1}']
    assert reader.carry == ""


def test_crlf_line_endings_are_stripped():
    reader = SSEFrameReader()

    records = reader.feed(b"data: one\r\n\r\ndata: two\r")
    records += reader.feed(b"\n")

    assert records == ["data: one", "data: two"]


def test_unterminated_tail_is_discarded_on_close():
    reader = SSEFrameReader()

    assert reader.feed(b'data: {"choices": []}') == []
    reader.close()

    assert reader.carry == ""
    with pytest.raises(RuntimeError):
        reader.feed(b"\n")


def test_empty_chunk_is_a_no_op():
    reader = SSEFrameReader()
    assert reader.feed(b"") == []


# -----------------------------------------------------------------------------
# Record parsing
# -----------------------------------------------------------------------------

def test_done_sentinel_is_recognized():
    assert parse_event_record("data: [DONE]") is DONE_RECORD
    assert parse_event_record("data: [DONE]").done is True


def test_malformed_json_is_reported_not_raised():
    parsed = parse_event_record('data: {"choices": [')

    assert parsed.done is False
    assert parsed.malformed is True


def test_non_object_json_is_malformed():
    assert parse_event_record("data: [1, 2, 3]").malformed is True
    assert parse_event_record('data: "text"').malformed is True


def test_valid_record_is_classified():
    parsed = parse_event_record(_sse({"choices": [{"delta": {"content": "hi"}}]}).strip())

    assert parsed.malformed is False
    assert parsed.payload is not None
    assert parsed.payload.has(PayloadKind.DELTA_TEXT)
    assert parsed.payload.delta_content == "hi"
    assert not hasattr(parsed, "raw")


def test_oversized_integer_is_malformed():
    parsed = parse_event_record("data: " + "1" * 5000)

    assert parsed.done is False
    assert parsed.malformed is True


def test_deeply_nested_json_is_malformed():
    assert parse_event_record("data: " + "[" * 100000).malformed is True
