"""Tests for Valves defaults/validation and OpenRouter error extraction."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from openrouter_chat_stream.core.config import Valves, _select_openrouter_http_referer
from openrouter_chat_stream.core.errors import (
    OpenRouterAPIError,
    _build_openrouter_api_error,
    _extract_openrouter_error_details,
)
from openrouter_chat_stream.core.utils import (
    _split_data_url,
    _wrap_base64_image,
    generate_request_id,
)


# -----------------------------------------------------------------------------
# Valves
# -----------------------------------------------------------------------------

def test_valves_read_environment(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "  env-key ")
    monkeypatch.setenv("OPENROUTER_API_BASE_URL", "https://proxy.example.com/v1/")
    monkeypatch.setenv("GLOBAL_LOG_LEVEL", "warning")

    valves = Valves()

    assert valves.API_KEY == "env-key"
    assert valves.BASE_URL == "https://proxy.example.com/v1"
    assert valves.LOG_LEVEL == "WARNING"


def test_valves_defaults(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_BASE_URL", raising=False)
    monkeypatch.setenv("GLOBAL_LOG_LEVEL", "chatty")

    valves = Valves()

    assert valves.BASE_URL == "https://openrouter.ai/api/v1"
    assert valves.LOG_LEVEL == "INFO"
    assert valves.DEFAULT_IMAGE_MEDIA_TYPE == "image/png"
    assert valves.HTTP_TOTAL_TIMEOUT_SECONDS is None


def test_valves_reject_bad_values():
    with pytest.raises(ValidationError):
        Valves(BASE_URL="openrouter.ai")
    with pytest.raises(ValidationError):
        Valves(DEFAULT_IMAGE_MEDIA_TYPE="text/plain")
    with pytest.raises(ValidationError):
        Valves(MAX_CONNECT_ATTEMPTS=0)


def test_referer_override():
    assert _select_openrouter_http_referer(Valves(HTTP_REFERER_OVERRIDE="https://me.example")) == "https://me.example"
    assert _select_openrouter_http_referer(Valves(HTTP_REFERER_OVERRIDE="me.example")).startswith("https://github.com/")


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

def test_extract_error_details_with_raw_provider_payload():
    body = json.dumps(
        {
            "error": {
                "message": "Provider returned error",
                "code": 400,
                "metadata": {
                    "provider_name": "Anthropic",
                    "raw": json.dumps({"error": {"message": "prompt too long"}, "request_id": "req_1"}),
                },
            }
        }
    )

    details = _extract_openrouter_error_details(body)

    assert details["openrouter_message"] == "Provider returned error"
    assert details["upstream_message"] == "prompt too long"
    assert details["provider"] == "Anthropic"
    assert details["request_id"] == "req_1"


def test_string_error_section():
    err = _build_openrouter_api_error(429, "Too Many Requests", json.dumps({"error": "slow down"}))

    assert str(err) == "slow down"
    assert err.status == 429


def test_error_without_body_uses_status_fallback():
    err = _build_openrouter_api_error(500, "Internal Server Error", None, extra_metadata={"retry_after": "3"})

    assert isinstance(err, OpenRouterAPIError)
    assert err.message == "API request failed: 500"
    assert err.metadata == {"retry_after": "3"}
    assert err.raw_body == ""


# -----------------------------------------------------------------------------
# Utils
# -----------------------------------------------------------------------------

def test_data_url_helpers():
    assert _split_data_url("data:image/JPG;base64,QUJD") == ("image/jpeg", "QUJD")
    assert _split_data_url("https://x/1.png") is None
    assert _split_data_url("data:image/png,raw") is None
    assert _wrap_base64_image("QUJD") == "data:image/png;base64,QUJD"
    assert _wrap_base64_image("data:image/gif;base64,R0lG", "image/png") == "data:image/gif;base64,R0lG"


def test_request_ids_are_unique_and_sortable_width():
    ids = {generate_request_id() for _ in range(50)}

    assert len(ids) == 50
    assert all(len(rid) == 16 for rid in ids)


def test_core_package_exports_only_public_names():
    import openrouter_chat_stream.core as core

    assert not [name for name in core.__all__ if name.startswith("_")]
    assert "LOGGER" not in core.__all__
    assert all(hasattr(core, name) for name in core.__all__)
