"""OpenRouter API gateway adapters."""

from .chat_completions_adapter import ChatCompletionsAdapter

__all__ = ["ChatCompletionsAdapter"]
