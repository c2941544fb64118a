"""Caller callback emission for decoded stream content."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

LOGGER = logging.getLogger(__name__)

TextCallback = Callable[[str], Union[None, Awaitable[None]]]
ImageCallback = Callable[[str], Union[None, Awaitable[None]]]


async def _invoke(callback: Callable[[str], Any], value: str) -> None:
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class CallbackEmitter:
    """Fire text/image callbacks in arrival order and accumulate the text.

    Callbacks may be plain functions or coroutine functions. Exceptions raised
    by a callback propagate to the caller of the decode session.
    """

    def __init__(
        self,
        on_text: Optional[TextCallback] = None,
        on_image: Optional[ImageCallback] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.on_text = on_text
        self.on_image = on_image
        self.logger = logger or LOGGER
        self._text_parts: list[str] = []
        self.text_events = 0
        self.image_events = 0

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    async def emit_text(self, text: str) -> None:
        if not text:
            return
        self._text_parts.append(text)
        self.text_events += 1
        if self.on_text is not None:
            await _invoke(self.on_text, text)

    async def emit_images(self, resources: list[str]) -> None:
        """Notify the image callback for resources the aggregator just appended."""
        for resource in resources:
            self.image_events += 1
            if self.on_image is not None:
                await _invoke(self.on_image, resource)
