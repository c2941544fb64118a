"""OpenRouter API layer: request construction and transport."""

from .gateway import ChatCompletionsAdapter

__all__ = ["ChatCompletionsAdapter"]
