"""Chat Completions API adapter for OpenRouter.

This module handles Chat Completions streaming and non-streaming requests.
Opening a request is retried on connection errors; once response bytes start
flowing nothing is replayed, so callbacks never fire twice for one increment.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ...core.config import DEFAULT_NO_CONTENT_MESSAGE, Valves, _select_openrouter_http_referer
from ...core.errors import _build_openrouter_api_error
from ...core.logging_system import SessionLogger
from ...core.utils import generate_request_id
from ...models.registry import get_model
from ...streaming.content import normalize_content
from ...streaming.event_emitter import ImageCallback, TextCallback
from ...streaming.streaming_core import StreamDecodeSession, StreamResult

LOGGER = logging.getLogger(__name__)

_SUCCESS_STATUSES = range(200, 300)


class ChatCompletionsAdapter:
    """Adapter for the OpenRouter /chat/completions endpoint."""

    def __init__(self, valves: Optional[Valves] = None, logger: Optional[logging.Logger] = None):
        """Initialize ChatCompletionsAdapter.

        Args:
            valves: Client configuration; defaults read the environment.
            logger: Logger instance for debugging
        """
        self.valves = valves or Valves()
        self.logger = logger or LOGGER

    @property
    def url(self) -> str:
        return self.valves.BASE_URL.rstrip("/") + "/chat/completions"

    def create_http_session(self) -> aiohttp.ClientSession:
        """Return a fresh ClientSession with timeouts taken from the valves."""
        valves = self.valves
        connect_timeout = float(valves.HTTP_CONNECT_TIMEOUT_SECONDS)
        total_timeout = float(valves.HTTP_TOTAL_TIMEOUT_SECONDS) if valves.HTTP_TOTAL_TIMEOUT_SECONDS else None
        sock_read = float(valves.HTTP_SOCK_READ_SECONDS) if total_timeout is None else None
        timeout = aiohttp.ClientTimeout(total=total_timeout, connect=connect_timeout, sock_read=sock_read)
        self.logger.debug(
            "HTTP timeouts: connect=%ss total=%s sock_read=%s",
            connect_timeout,
            total_timeout if total_timeout is not None else "disabled",
            sock_read if sock_read is not None else "disabled",
        )
        return aiohttp.ClientSession(timeout=timeout, json_serialize=json.dumps)

    def build_headers(self, api_key: Optional[str] = None, *, stream: bool = False) -> dict[str, str]:
        key = (api_key if api_key is not None else self.valves.API_KEY).strip()
        headers = {
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "X-Title": self.valves.X_TITLE,
            "HTTP-Referer": _select_openrouter_http_referer(self.valves),
        }
        if stream:
            headers["Accept"] = "text/event-stream"
        return headers

    def build_payload(self, messages: list[dict[str, Any]], model: str, *, stream: bool = False) -> dict[str, Any]:
        """Reduce chat history to ``role``/``content`` pairs for the request body."""
        if get_model(model) is None:
            self.logger.debug("Model %s is not in the local catalog; sending as-is", model)
        payload: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": message.get("role"), "content": message.get("content")}
                for message in messages
                if isinstance(message, dict)
            ],
        }
        if stream:
            payload["stream"] = True
        return payload

    async def _open(
        self,
        session: aiohttp.ClientSession,
        payload: dict[str, Any],
        headers: dict[str, str],
    ) -> aiohttp.ClientResponse:
        """POST the request, retrying only failures to connect, and check the status."""
        retryer = AsyncRetrying(
            stop=stop_after_attempt(self.valves.MAX_CONNECT_ATTEMPTS),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception_type((aiohttp.ClientConnectionError, asyncio.TimeoutError)),
            reraise=True,
        )
        resp: Optional[aiohttp.ClientResponse] = None
        async for attempt in retryer:
            with attempt:
                resp = await session.post(self.url, json=payload, headers=headers)
        if resp is None:
            raise RuntimeError("OpenRouter request was never attempted")

        if resp.status not in _SUCCESS_STATUSES:
            try:
                body = (await resp.read()).decode("utf-8", errors="replace")
            except aiohttp.ClientError as exc:
                body = ""
                self.logger.debug("Failed to read error body: %s", exc)
            finally:
                resp.release()
            self.logger.warning("OpenRouter request failed (%s %s)", resp.status, resp.reason)
            raise _build_openrouter_api_error(
                resp.status,
                resp.reason or "HTTP error",
                body,
                requested_model=payload.get("model"),
            )
        return resp

    async def send_message(
        self,
        session: aiohttp.ClientSession,
        messages: list[dict[str, Any]],
        model: str,
        *,
        api_key: Optional[str] = None,
    ) -> str:
        """Send a non-streaming request and return the reply text."""
        payload = self.build_payload(messages, model)
        resp = await self._open(session, payload, self.build_headers(api_key))
        try:
            data = await resp.json(content_type=None)
        finally:
            resp.release()

        choices = data.get("choices") if isinstance(data, dict) else None
        message = choices[0].get("message") if isinstance(choices, list) and choices and isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        text = "".join(
            piece.value
            for piece in normalize_content(content, default_media_type=self.valves.DEFAULT_IMAGE_MEDIA_TYPE)
            if piece.kind == "text"
        )
        return text or DEFAULT_NO_CONTENT_MESSAGE

    async def send_message_stream(
        self,
        session: aiohttp.ClientSession,
        messages: list[dict[str, Any]],
        model: str,
        on_text: Optional[TextCallback] = None,
        on_image: Optional[ImageCallback] = None,
        *,
        api_key: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
        request_id: Optional[str] = None,
    ) -> StreamResult:
        """Stream a chat completion, firing callbacks as content is decoded.

        Raises:
            OpenRouterAPIError: the endpoint answered with a non-success status.
            StreamCancelledError: ``cancel_event`` was set mid-stream.
        """
        payload = self.build_payload(messages, model, stream=True)
        headers = self.build_headers(api_key, stream=True)
        rid = request_id or generate_request_id()

        with SessionLogger.bind(rid, level=self.valves.LOG_LEVEL):
            try:
                self.logger.debug("OpenRouter request payload: model=%s messages=%d", model, len(payload["messages"]))
                resp = await self._open(session, payload, headers)
                decoder = StreamDecodeSession(
                    on_text,
                    on_image,
                    default_media_type=self.valves.DEFAULT_IMAGE_MEDIA_TYPE,
                    logger=self.logger,
                )
                try:
                    return await decoder.run(resp.content.iter_any(), cancel_event=cancel_event)
                finally:
                    resp.release()
            finally:
                SessionLogger.cleanup()
