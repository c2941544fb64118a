"""OpenRouter chat stream client.

This package decodes OpenRouter ``/chat/completions`` server-sent event
streams into text increments and image resources:
- Streaming subsystem: framing, payload classification, content and image handling
- Infrastructure modules: config, errors, session logging, helpers
- API gateway: request construction and transport
- Model catalog
"""

try:
    from importlib.metadata import PackageNotFoundError, version as _get_version
    __version__ = _get_version("openrouter-chat-stream")
except PackageNotFoundError:
    __version__ = "1.0.0"  # Fallback if not installed as package

from .api.gateway.chat_completions_adapter import ChatCompletionsAdapter
from .core.config import Valves
from .core.errors import OpenRouterAPIError, StreamCancelledError
from .models.registry import AVAILABLE_MODELS, ModelInfo
from .streaming.streaming_core import StreamDecodeSession, StreamResult, decode_stream

__all__ = [
    "__version__",
    "ChatCompletionsAdapter",
    "Valves",
    "OpenRouterAPIError",
    "StreamCancelledError",
    "AVAILABLE_MODELS",
    "ModelInfo",
    "StreamDecodeSession",
    "StreamResult",
    "decode_stream",
]
