"""Static catalog of selectable OpenRouter chat models.

The catalog is the list offered to users when picking a model; it is not
fetched from OpenRouter. Model ids use the ``author/model`` form accepted by
``/chat/completions``.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

LOGGER = logging.getLogger(__name__)


class ModelInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    provider: str


AVAILABLE_MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(id="openai/gpt-5.2", name="GPT-5.2", provider="OpenAI"),
    ModelInfo(id="openai/gpt-4o", name="GPT-4o", provider="OpenAI"),
    ModelInfo(id="openai/gpt-4o-mini", name="GPT-4o Mini", provider="OpenAI"),
    ModelInfo(id="openai/gpt-4-turbo", name="GPT-4 Turbo", provider="OpenAI"),
    ModelInfo(id="anthropic/claude-opus-4.5", name="Claude Opus 4.5", provider="Anthropic"),
    ModelInfo(id="anthropic/claude-3.5-sonnet", name="Claude 3.5 Sonnet", provider="Anthropic"),
    ModelInfo(id="anthropic/claude-3-haiku", name="Claude 3 Haiku", provider="Anthropic"),
    ModelInfo(id="google/gemini-3-pro-preview", name="Gemini 3 Pro", provider="Google"),
    ModelInfo(id="google/gemini-3-flash-preview", name="Gemini 3 Flash", provider="Google"),
    ModelInfo(id="google/gemini-pro-1.5", name="Gemini Pro 1.5", provider="Google"),
    ModelInfo(id="google/gemini-flash-1.5", name="Gemini Flash 1.5", provider="Google"),
    ModelInfo(id="meta-llama/llama-3.1-70b-instruct", name="Llama 3.1 70B", provider="Meta"),
    ModelInfo(id="meta-llama/llama-3.1-8b-instruct", name="Llama 3.1 8B", provider="Meta"),
    ModelInfo(id="deepseek/deepseek-v3.2", name="DeepSeek V3.2", provider="DeepSeek"),
    ModelInfo(id="deepseek/deepseek-chat", name="DeepSeek Chat", provider="DeepSeek"),
    ModelInfo(id="qwen/qwen-2.5-72b-instruct", name="Qwen 2.5 72B", provider="Alibaba"),
)

DEFAULT_MODEL_ID = AVAILABLE_MODELS[0].id


def sanitize_model_id(model_id: str) -> str:
    """Convert `author/model` ids into dot-friendly ids for display keys."""
    if not model_id or "/" not in model_id:
        return model_id
    head, tail = model_id.split("/", 1)
    return f"{head}.{tail.replace('/', '.')}"


def list_models() -> list[ModelInfo]:
    return list(AVAILABLE_MODELS)


def get_model(model_id: str) -> Optional[ModelInfo]:
    """Look up a catalog entry by its ``author/model`` or dotted id."""
    needle = (model_id or "").strip()
    if not needle:
        return None
    for model in AVAILABLE_MODELS:
        if needle in (model.id, sanitize_model_id(model.id)):
            return model
    return None


def models_by_provider() -> dict[str, list[ModelInfo]]:
    """Group the catalog by provider, preserving catalog order."""
    grouped: dict[str, list[ModelInfo]] = {}
    for model in AVAILABLE_MODELS:
        grouped.setdefault(model.provider, []).append(model)
    return grouped
