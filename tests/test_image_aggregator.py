"""Tests for ImageAggregator reassembly and de-duplication."""

from __future__ import annotations

import logging

import pytest

from openrouter_chat_stream.streaming.image_aggregator import ImageAggregator


@pytest.fixture
def aggregator() -> ImageAggregator:
    return ImageAggregator()


def test_complete_url_is_appended_once(aggregator):
    assert aggregator.add_complete("https://x/1.png") == ["https://x/1.png"]
    assert aggregator.add_complete("https://x/1.png") == []
    assert aggregator.images == ["https://x/1.png"]


def test_fragments_reassemble_only_at_finalize(aggregator):
    for chunk in ("iVBOR", "w0KGgo", "="):
        assert aggregator.add_delta_images([{"index": 0, "b64_json": chunk}]) == []

    assert aggregator.images == []
    assert aggregator.pending_fragments == {0: "iVBORw0KGgo="}
    assert aggregator.finalize() == ["data:image/png;base64,iVBORw0KGgo="]
    assert aggregator.pending_fragments == {}


def test_data_url_fragment_payload_is_extracted(aggregator):
    aggregator.add_delta_images(
        [{"type": "image_url", "index": 1, "image_url": {"url": "data:image/jpeg;base64,/9j/"}}]
    )
    aggregator.add_delta_images([{"index": 1, "image_url": {"url": "4AAQ"}}])

    assert aggregator.finalize() == ["data:image/jpeg;base64,/9j/4AAQ"]


def test_fragments_finalize_in_index_order(aggregator):
    aggregator.add_delta_images([{"index": 2, "b64_json": "QkJC"}])
    aggregator.add_delta_images([{"index": 0, "b64_json": "QUFB"}])

    assert aggregator.finalize() == [
        "data:image/png;base64,QUFB",
        "data:image/png;base64,QkJC",
    ]


def test_remote_url_with_index_is_complete(aggregator):
    added = aggregator.add_delta_images([{"index": 0, "image_url": {"url": "https://x/a.png"}}])

    assert added == ["https://x/a.png"]
    assert aggregator.pending_fragments == {}


def test_unindexed_descriptors_are_complete(aggregator):
    added = aggregator.add_delta_images(
        [
            {"url": "https://x/b.png"},
            {"b64_json": "QUJD"},
            {"type": "image_url", "image_url": {"url": "data:image/gif;base64,R0lG"}},
            "https://x/c.png",
            {"type": "image_url"},
        ]
    )

    assert added == [
        "https://x/b.png",
        "data:image/png;base64,QUJD",
        "data:image/gif;base64,R0lG",
        "https://x/c.png",
    ]


def test_generation_results_wrap_b64(aggregator):
    added = aggregator.add_generation_results(
        [{"url": "https://x/g.png"}, {"b64_json": "QUJD"}, {"b64_json": ""}, "bogus"]
    )

    assert added == ["https://x/g.png", "data:image/png;base64,QUJD"]


def test_dedup_across_sources(aggregator):
    aggregator.add_generation_results([{"b64_json": "QUJD"}])
    aggregator.add_delta_images([{"index": 0, "b64_json": "QUJD"}])
    aggregator.add_message_images([{"image_url": {"url": "data:image/png;base64,QUJD"}}])

    assert aggregator.finalize() == []
    assert aggregator.images == ["data:image/png;base64,QUJD"]


def test_invalid_base64_fragment_is_emitted_best_effort(aggregator, caplog):
    aggregator.add_delta_images([{"index": 0, "b64_json": "not*base64"}])

    with caplog.at_level(logging.WARNING, logger="openrouter_chat_stream.streaming.image_aggregator"):
        added = aggregator.finalize()

    assert added == ["data:image/png;base64,not*base64"]
    assert "not valid base64" in caplog.text


def test_fragment_after_finalize_is_ignored(aggregator):
    aggregator.finalize()
    aggregator.add_fragment(0, "QUJD")

    assert aggregator.pending_fragments == {}
    assert aggregator.finalize() == []


def test_custom_default_media_type():
    aggregator = ImageAggregator(default_media_type="image/webp")
    aggregator.add_delta_images([{"index": 0, "b64_json": "UklG"}])

    assert aggregator.finalize() == ["data:image/webp;base64,UklG"]
